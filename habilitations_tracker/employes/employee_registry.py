"""Registre des employes.

Permet de :
- Creer ou mettre a jour un employe a partir de son matricule
- Consulter, rechercher et trier les employes
- Supprimer un employe avec toutes ses habilitations
"""

import logging
import sqlite3
from typing import Optional

from habilitations_tracker.core.exceptions import MissingFieldError, NotFoundError
from habilitations_tracker.database.db_manager import Database
from habilitations_tracker.hierarchie.hierarchy_store import HierarchyStore
from habilitations_tracker.models.entites import CheminHierarchique, Employe
from habilitations_tracker.utils.texte_utils import cle_tri_locale

logger = logging.getLogger("habilitations_tracker.employes")

TRIS = ("matricule", "nom")

_SELECT_EMPLOYE = """
    SELECT e.id, e.matricule, e.prenom, e.nom,
           e.division_id, e.service_id, e.section_id, e.equipe_id
    FROM employes e
"""


class EmployeeRegistry:
    """Registre des employes, indexe par matricule."""

    def __init__(self, db: Database, hierarchie: HierarchyStore):
        self.db = db
        self.hierarchie = hierarchie

    # ============================
    # ECRITURE
    # ============================

    def upsert(
        self,
        matricule: str,
        prenom: str,
        nom: str,
        chemin: CheminHierarchique,
        *,
        conn: Optional[sqlite3.Connection] = None,
    ) -> tuple[Employe, bool]:
        """Cree ou met a jour l'employe portant ce matricule.

        Returns:
            (employe, cree) ou ``cree`` vaut True si la ligne a ete inseree.
        """
        matricule = matricule.strip()
        if not matricule:
            raise MissingFieldError("Le matricule est obligatoire.")

        with self.db.transaction(conn) as c:
            self.hierarchie.verifier_chemin(chemin, conn=c)
            row = c.execute(
                "SELECT id FROM employes WHERE matricule = ?", (matricule,)
            ).fetchone()

            if row is None:
                cursor = c.execute(
                    """INSERT INTO employes
                       (matricule, prenom, nom, division_id, service_id, section_id, equipe_id)
                       VALUES (?, ?, ?, ?, ?, ?, ?)""",
                    (
                        matricule, prenom.strip(), nom.strip(),
                        chemin.division_id, chemin.service_id,
                        chemin.section_id, chemin.equipe_id,
                    ),
                )
                employe_id, cree = cursor.lastrowid, True
                logger.info("Employe %s cree (id %d)", matricule, employe_id)
            else:
                employe_id, cree = row["id"], False
                self._mettre_a_jour(c, employe_id, prenom, nom, chemin)

            return self.get(employe_id, conn=c), cree

    def modifier(
        self,
        employe_id: int,
        prenom: str,
        nom: str,
        chemin: CheminHierarchique,
        *,
        conn: Optional[sqlite3.Connection] = None,
    ) -> Employe:
        """Modifie les noms et le rattachement d'un employe (le matricule est immuable)."""
        with self.db.transaction(conn) as c:
            self.get(employe_id, conn=c)
            self.hierarchie.verifier_chemin(chemin, conn=c)
            self._mettre_a_jour(c, employe_id, prenom, nom, chemin)
            return self.get(employe_id, conn=c)

    @staticmethod
    def _mettre_a_jour(
        conn: sqlite3.Connection, employe_id: int, prenom: str, nom: str,
        chemin: CheminHierarchique,
    ) -> None:
        conn.execute(
            """UPDATE employes
               SET prenom = ?, nom = ?, division_id = ?, service_id = ?,
                   section_id = ?, equipe_id = ?, updated_at = datetime('now')
               WHERE id = ?""",
            (
                prenom.strip(), nom.strip(), chemin.division_id, chemin.service_id,
                chemin.section_id, chemin.equipe_id, employe_id,
            ),
        )

    def supprimer(self, employe_id: int, *, conn: Optional[sqlite3.Connection] = None) -> int:
        """Supprime l'employe et toutes ses habilitations dans la meme transaction.

        Returns:
            Le nombre d'habilitations supprimees.
        """
        with self.db.transaction(conn) as c:
            self.get(employe_id, conn=c)
            nb = c.execute(
                "DELETE FROM habilitations WHERE employe_id = ?", (employe_id,)
            ).rowcount
            c.execute("DELETE FROM employes WHERE id = ?", (employe_id,))
        logger.info("Employe %d supprime avec %d habilitation(s)", employe_id, nb)
        return nb

    # ============================
    # LECTURE
    # ============================

    def get(self, employe_id: int, *, conn: Optional[sqlite3.Connection] = None) -> Employe:
        with self.db.lecture(conn) as c:
            row = c.execute(_SELECT_EMPLOYE + " WHERE e.id = ?", (employe_id,)).fetchone()
        if row is None:
            raise NotFoundError(f"Employe {employe_id} introuvable.")
        return _employe_depuis_ligne(row)

    def get_par_matricule(
        self, matricule: str, *, conn: Optional[sqlite3.Connection] = None,
    ) -> Employe:
        with self.db.lecture(conn) as c:
            row = c.execute(
                _SELECT_EMPLOYE + " WHERE e.matricule = ?", (matricule.strip(),)
            ).fetchone()
        if row is None:
            raise NotFoundError(f"Aucun employe pour le matricule '{matricule}'.")
        return _employe_depuis_ligne(row)

    def lister(
        self,
        recherche: Optional[str] = None,
        division_id: Optional[int] = None,
        tri: str = "matricule",
    ) -> list[Employe]:
        """Liste les employes filtres puis tries.

        Args:
            recherche: Texte cherche (sans casse) dans le matricule, les noms,
                le service et l'equipe.
            division_id: Restreint a une division.
            tri: "matricule" ou "nom" (nom puis prenom).
        """
        if tri not in TRIS:
            raise ValueError(f"Tri inconnu : {tri}. Tris acceptes : {', '.join(TRIS)}")

        sql = _SELECT_EMPLOYE + """
            JOIN services s ON s.id = e.service_id
            LEFT JOIN equipes q ON q.id = e.equipe_id
            WHERE 1 = 1
        """
        params: list = []
        if division_id is not None:
            sql += " AND e.division_id = ?"
            params.append(division_id)
        if recherche:
            terme = f"%{recherche.strip().lower()}%"
            sql += """ AND (
                lower(e.matricule) LIKE ? OR lower(e.prenom) LIKE ? OR lower(e.nom) LIKE ?
                OR lower(s.name) LIKE ? OR lower(coalesce(q.name, '')) LIKE ?
            )"""
            params.extend([terme] * 5)

        employes = [_employe_depuis_ligne(r) for r in self.db.execute(sql, tuple(params))]
        if tri == "matricule":
            employes.sort(key=lambda e: cle_tri_locale(e.matricule))
        else:
            employes.sort(key=lambda e: (cle_tri_locale(e.nom), cle_tri_locale(e.prenom)))
        return employes


def _employe_depuis_ligne(row: sqlite3.Row) -> Employe:
    return Employe(
        id=row["id"],
        matricule=row["matricule"],
        prenom=row["prenom"],
        nom=row["nom"],
        division_id=row["division_id"],
        service_id=row["service_id"],
        section_id=row["section_id"],
        equipe_id=row["equipe_id"],
    )
