"""Rapprochement d'un tableau d'import avec la base.

Pour chaque ligne :
1. Interpretation des cellules (identite, chemin d'organigramme, codes, dates)
2. Resolution du chemin Division > Service > Section > Equipe
3. Creation ou mise a jour de l'employe par matricule
4. Une habilitation par famille dont au moins un code est present

Chaque ligne est traitee dans sa propre transaction : une ligne rejetee
ne laisse aucune ecriture partielle et n'interrompt pas le lot. Seule une
defaillance de la base interrompt le lot.
"""

import logging
import sqlite3
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Iterable, Optional

from habilitations_tracker.config.constants import (
    COL_DATE_EXPIRATION, COL_DATE_VALIDATION, COL_DIVISION, COL_EQUIPE,
    COL_MATRICULE, COL_NOM, COL_NUMERO, COL_PRENOM, COL_SECTION, COL_SERVICE,
    COLONNES_CODES, NB_COLONNES_IMPORT, Famille, famille_du_code,
)
from habilitations_tracker.core.exceptions import (
    HabilitationsError, MalformedRowError, MissingFieldError, ParseError, StorageError,
)
from habilitations_tracker.core.resultats import Issue, ResultatImport, ResultatLigne
from habilitations_tracker.database.db_manager import Database
from habilitations_tracker.employes.employee_registry import EmployeeRegistry
from habilitations_tracker.habilitations.ledger import HabilitationLedger
from habilitations_tracker.hierarchie.hierarchy_store import HierarchyStore
from habilitations_tracker.parsers.base_parser import LigneBrute
from habilitations_tracker.parsers.parser_factory import ParserFactory
from habilitations_tracker.parsers.tsv_parser import TSVParser
from habilitations_tracker.security.audit_logger import AuditLogger, empreinte_sha256
from habilitations_tracker.utils.date_utils import parser_date
from habilitations_tracker.utils.texte_utils import normaliser_cellule, normaliser_nom

logger = logging.getLogger("habilitations_tracker.importation")


@dataclass
class LigneImport:
    """Ligne d'import interpretee et typee."""
    index: int
    matricule: str
    nom: str
    prenom: str
    division: str
    service: str
    section: str
    equipe: str
    codes: dict[Famille, frozenset[str]] = field(default_factory=dict)
    numero: Optional[str] = None
    date_validation: Optional[date] = None
    date_expiration: Optional[date] = None


def interpreter_ligne(ligne: LigneBrute, nb_colonnes: int = NB_COLONNES_IMPORT) -> LigneImport:
    """Convertit une ligne brute en ``LigneImport``.

    Raises:
        MalformedRowError: nombre de colonnes different du schema.
        MissingFieldError: matricule ou nom absent.
        MalformedDateError: codes presents mais dates illisibles.
    """
    cellules = ligne.cellules
    if len(cellules) != nb_colonnes:
        raise MalformedRowError(
            f"{len(cellules)} colonne(s) lue(s), {nb_colonnes} attendue(s)."
        )

    texte = [normaliser_cellule(c) for c in cellules]
    matricule = texte[COL_MATRICULE]
    if not matricule:
        raise MissingFieldError("Matricule absent.")
    if not texte[COL_NOM]:
        raise MissingFieldError(f"Nom absent pour le matricule {matricule}.")

    presents: dict[Famille, set[str]] = {}
    for colonne, code in COLONNES_CODES.items():
        if texte[colonne]:
            presents.setdefault(famille_du_code(code), set()).add(code)

    resultat = LigneImport(
        index=ligne.index,
        matricule=matricule,
        nom=texte[COL_NOM],
        prenom=texte[COL_PRENOM],
        division=normaliser_nom(cellules[COL_DIVISION]),
        service=normaliser_nom(cellules[COL_SERVICE]),
        section=normaliser_nom(cellules[COL_SECTION]),
        equipe=normaliser_nom(cellules[COL_EQUIPE]),
        codes={f: frozenset(c) for f, c in presents.items()},
        numero=texte[COL_NUMERO] or None,
    )
    if resultat.codes:
        # Les cellules Excel arrivent deja en date ; le texte est au format D/M/YYYY
        resultat.date_validation = parser_date(_cellule_date(cellules[COL_DATE_VALIDATION]))
        resultat.date_expiration = parser_date(_cellule_date(cellules[COL_DATE_EXPIRATION]))
    return resultat


def _cellule_date(valeur):
    return valeur if isinstance(valeur, date) else normaliser_cellule(valeur)


class BulkImportReconciler:
    """Import en masse des employes et de leurs habilitations."""

    def __init__(
        self,
        db: Database,
        hierarchie: HierarchyStore,
        registre: EmployeeRegistry,
        ledger: HabilitationLedger,
        audit: Optional[AuditLogger] = None,
        nb_colonnes: int = NB_COLONNES_IMPORT,
        max_file_size_mb: Optional[int] = None,
    ):
        self.db = db
        self.hierarchie = hierarchie
        self.registre = registre
        self.ledger = ledger
        self.audit = audit
        self.nb_colonnes = nb_colonnes
        self.max_file_size_mb = max_file_size_mb
        self.parser_factory = ParserFactory(nb_colonnes)

    # ============================
    # POINTS D'ENTREE
    # ============================

    def importer_texte(self, texte: str, acteur: str = "systeme") -> ResultatImport:
        """Importe une charge utile texte (cellules separees par tabulations)."""
        lignes = TSVParser(self.nb_colonnes).lire_texte(texte)
        return self.importer_lignes(lignes, acteur, empreinte=empreinte_sha256(texte))

    def importer_fichier(
        self, chemin: Path, acteur: str = "systeme", *, nom_fichier: Optional[str] = None,
    ) -> ResultatImport:
        """Importe un fichier .tsv, .txt ou .xlsx.

        ``nom_fichier`` remplace le chemin dans le journal d'audit (fichier
        televerse puis copie dans un repertoire temporaire).
        """
        chemin = Path(chemin)
        if not chemin.exists():
            raise ParseError(f"Fichier introuvable : {chemin}")
        if self.max_file_size_mb is not None:
            taille_mb = chemin.stat().st_size / (1024 * 1024)
            if taille_mb > self.max_file_size_mb:
                raise ParseError(
                    f"Le fichier {chemin.name} fait {taille_mb:.1f} MB, "
                    f"la limite est de {self.max_file_size_mb} MB."
                )

        parser = self.parser_factory.get_parser(chemin)
        lignes = parser.lire_lignes(chemin)
        logger.info("%s : %d ligne(s) a rapprocher", chemin.name, len(lignes))
        return self.importer_lignes(
            lignes, acteur,
            fichier=nom_fichier or str(chemin),
            empreinte=empreinte_sha256(chemin.read_bytes()),
        )

    def importer_lignes(
        self,
        lignes: Iterable[LigneBrute],
        acteur: str = "systeme",
        *,
        fichier: Optional[str] = None,
        empreinte: Optional[str] = None,
    ) -> ResultatImport:
        """Rapproche les lignes une par une et retourne le bilan du lot.

        Raises:
            StorageError: la base est indisponible ; ``resultat_partiel``
                contient les lignes deja traitees.
        """
        resultat = ResultatImport()
        for ligne in lignes:
            try:
                resultat.lignes.append(self._rapprocher(ligne))
            except HabilitationsError as e:
                logger.warning("Ligne %d rejetee (%s) : %s", ligne.index, e.kind, e)
                resultat.lignes.append(ResultatLigne(
                    index=ligne.index,
                    issue=Issue.FAILED,
                    matricule=normaliser_cellule(ligne.cellules[COL_MATRICULE]) if ligne.cellules else "",
                    detail=str(e),
                    raison=e.kind,
                ))
            except sqlite3.Error as e:
                logger.error("Base indisponible a la ligne %d : %s", ligne.index, e)
                if self.audit:
                    self.audit.log_erreur(acteur, "import_employes", str(e))
                raise StorageError(
                    f"Import interrompu a la ligne {ligne.index} : {e}",
                    resultat_partiel=resultat,
                ) from e

        logger.info(
            "Import termine : %d cree(s), %d mis a jour, %d rejete(s)",
            resultat.nb_crees, resultat.nb_mis_a_jour, resultat.nb_echecs,
        )
        if self.audit:
            self.audit.log_import(acteur, resultat.to_dict(), fichier=fichier, empreinte=empreinte)
        return resultat

    # ============================
    # TRAITEMENT D'UNE LIGNE
    # ============================

    def _rapprocher(self, ligne: LigneBrute) -> ResultatLigne:
        donnees = interpreter_ligne(ligne, self.nb_colonnes)

        with self.db.transaction() as conn:
            chemin = self.hierarchie.resolve_path(
                donnees.division, donnees.service, donnees.section, donnees.equipe, conn=conn,
            )
            employe, cree = self.registre.upsert(
                donnees.matricule, donnees.prenom, donnees.nom, chemin, conn=conn,
            )
            issues: dict[str, Issue] = {}
            for famille in (Famille.HT, Famille.ST):
                codes = donnees.codes.get(famille)
                if not codes:
                    continue
                _, hab_cree = self.ledger.enregistrer(
                    employe.id, famille, codes,
                    donnees.date_validation, donnees.date_expiration,
                    donnees.numero, conn=conn,
                )
                issues[famille.value] = Issue.CREATED if hab_cree else Issue.UPDATED

        return ResultatLigne(
            index=donnees.index,
            issue=Issue.CREATED if cree else Issue.UPDATED,
            matricule=employe.matricule,
            detail=employe.nom_complet,
            habilitations=issues,
        )
