"""Resolution et creation des noeuds de l'organigramme.

Division > Service > Section > Equipe. Un nom est unique parmi les
noeuds partageant le meme parent ; un nom jamais vu est accepte et
devient canonique. Les noeuds ne sont ni renommes ni supprimes ici.
"""

import logging
import sqlite3
from typing import Iterable, Optional

from habilitations_tracker.config.constants import Niveau, TABLES_NIVEAUX, NIVEAUX_ORDONNES
from habilitations_tracker.core.exceptions import (
    HierarchyConflictError, InvalidPathError, NotFoundError,
)
from habilitations_tracker.database.db_manager import Database
from habilitations_tracker.models.entites import (
    CheminHierarchique, NoeudHierarchique, NomsChemin,
)
from habilitations_tracker.utils.texte_utils import normaliser_nom

logger = logging.getLogger("habilitations_tracker.hierarchie")


class HierarchyStore:
    """Organigramme a quatre niveaux."""

    def __init__(self, db: Database):
        self.db = db

    def resolve_path(
        self,
        division: str,
        service: str,
        section: str,
        equipe: str = "",
        *,
        conn: Optional[sqlite3.Connection] = None,
    ) -> CheminHierarchique:
        """Resout (ou cree) le chemin complet et retourne les identifiants.

        L'equipe peut etre vide ; les trois niveaux superieurs sont obligatoires.
        """
        noms = [normaliser_nom(division), normaliser_nom(service), normaliser_nom(section)]
        for niveau, nom in zip(NIVEAUX_ORDONNES, noms):
            if not nom:
                raise InvalidPathError(f"Le niveau '{niveau.value}' est obligatoire.")

        with self.db.transaction(conn) as c:
            division_id = self._resoudre(c, Niveau.DIVISION, noms[0], None)
            service_id = self._resoudre(c, Niveau.SERVICE, noms[1], division_id)
            section_id = self._resoudre(c, Niveau.SECTION, noms[2], service_id)
            nom_equipe = normaliser_nom(equipe)
            equipe_id = (
                self._resoudre(c, Niveau.EQUIPE, nom_equipe, section_id)
                if nom_equipe else None
            )
        return CheminHierarchique(division_id, service_id, section_id, equipe_id)

    def charger_organigramme(
        self,
        chemins: Iterable[tuple[str, str, str, str]],
        *,
        conn: Optional[sqlite3.Connection] = None,
    ) -> int:
        """Resout une liste de chemins en une seule transaction.

        Returns:
            Le nombre de chemins traites.
        """
        nb = 0
        with self.db.transaction(conn) as c:
            for division, service, section, equipe in chemins:
                self.resolve_path(division, service, section, equipe, conn=c)
                nb += 1
        logger.info("Organigramme charge : %d chemin(s)", nb)
        return nb

    def _resoudre(
        self, conn: sqlite3.Connection, niveau: Niveau, nom: str, parent_id: Optional[int],
    ) -> int:
        """Recherche puis insertion conditionnelle d'un noeud."""
        noeud_id = self._chercher(conn, niveau, nom, parent_id)
        if noeud_id is not None:
            return noeud_id

        table, col_parent = TABLES_NIVEAUX[niveau]
        try:
            if col_parent is None:
                cursor = conn.execute(f"INSERT INTO {table} (name) VALUES (?)", (nom,))
            else:
                cursor = conn.execute(
                    f"INSERT INTO {table} (name, {col_parent}) VALUES (?, ?)",
                    (nom, parent_id),
                )
        except sqlite3.IntegrityError:
            # Insertion concurrente perdue : on relit le noeud gagnant
            noeud_id = self._chercher(conn, niveau, nom, parent_id)
            if noeud_id is None:
                raise HierarchyConflictError(
                    f"Impossible de creer ou retrouver {niveau.value} '{nom}' "
                    f"(parent {parent_id})."
                ) from None
            return noeud_id

        logger.info("Nouveau noeud %s '%s' (parent %s)", niveau.value, nom, parent_id)
        return cursor.lastrowid

    @staticmethod
    def _chercher(
        conn: sqlite3.Connection, niveau: Niveau, nom: str, parent_id: Optional[int],
    ) -> Optional[int]:
        table, col_parent = TABLES_NIVEAUX[niveau]
        if col_parent is None:
            row = conn.execute(f"SELECT id FROM {table} WHERE name = ?", (nom,)).fetchone()
        else:
            row = conn.execute(
                f"SELECT id FROM {table} WHERE name = ? AND {col_parent} = ?",
                (nom, parent_id),
            ).fetchone()
        return row["id"] if row else None

    # ============================
    # LECTURE
    # ============================

    def get_noeud(
        self, niveau: Niveau, noeud_id: int, *, conn: Optional[sqlite3.Connection] = None,
    ) -> NoeudHierarchique:
        table, col_parent = TABLES_NIVEAUX[niveau]
        colonnes = f"id, name, {col_parent} AS parent_id" if col_parent else "id, name, NULL AS parent_id"
        with self.db.lecture(conn) as c:
            row = c.execute(f"SELECT {colonnes} FROM {table} WHERE id = ?", (noeud_id,)).fetchone()
        if row is None:
            raise NotFoundError(f"{niveau.value.capitalize()} {noeud_id} introuvable.")
        return NoeudHierarchique(row["id"], niveau, row["name"], row["parent_id"])

    def lister_divisions(self) -> list[NoeudHierarchique]:
        rows = self.db.execute("SELECT id, name FROM divisions ORDER BY name")
        return [NoeudHierarchique(r["id"], Niveau.DIVISION, r["name"]) for r in rows]

    def lister_enfants(self, niveau: Niveau, parent_id: int) -> list[NoeudHierarchique]:
        """Liste les noeuds de ``niveau`` rattaches a ``parent_id``."""
        table, col_parent = TABLES_NIVEAUX[niveau]
        if col_parent is None:
            raise ValueError("Les divisions n'ont pas de parent.")
        rows = self.db.execute(
            f"SELECT id, name FROM {table} WHERE {col_parent} = ? ORDER BY name",
            (parent_id,),
        )
        return [NoeudHierarchique(r["id"], niveau, r["name"], parent_id) for r in rows]

    def verifier_chemin(
        self, chemin: CheminHierarchique, *, conn: Optional[sqlite3.Connection] = None,
    ) -> None:
        """Verifie que chaque niveau existe et que les liens de parente concordent.

        Raises:
            InvalidPathError: noeud inexistant ou rattache a un autre parent.
        """
        attendus = [
            (Niveau.DIVISION, chemin.division_id, None),
            (Niveau.SERVICE, chemin.service_id, chemin.division_id),
            (Niveau.SECTION, chemin.section_id, chemin.service_id),
        ]
        if chemin.equipe_id is not None:
            attendus.append((Niveau.EQUIPE, chemin.equipe_id, chemin.section_id))

        with self.db.lecture(conn) as c:
            for niveau, noeud_id, parent_attendu in attendus:
                try:
                    noeud = self.get_noeud(niveau, noeud_id, conn=c)
                except NotFoundError as e:
                    raise InvalidPathError(str(e)) from e
                if noeud.parent_id != parent_attendu:
                    raise InvalidPathError(
                        f"{niveau.value.capitalize()} {noeud_id} n'est pas rattache(e) "
                        f"au parent {parent_attendu}."
                    )

    def noms_chemin(
        self, chemin: CheminHierarchique, *, conn: Optional[sqlite3.Connection] = None,
    ) -> NomsChemin:
        with self.db.lecture(conn) as c:
            division = self.get_noeud(Niveau.DIVISION, chemin.division_id, conn=c).nom
            service = self.get_noeud(Niveau.SERVICE, chemin.service_id, conn=c).nom
            section = self.get_noeud(Niveau.SECTION, chemin.section_id, conn=c).nom
            equipe = (
                self.get_noeud(Niveau.EQUIPE, chemin.equipe_id, conn=c).nom
                if chemin.equipe_id is not None else ""
            )
        return NomsChemin(division, service, section, equipe)
