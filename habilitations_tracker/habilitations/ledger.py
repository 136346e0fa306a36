"""Registre des habilitations : creation, renouvellement et classement.

Regles :
- chaque code appartient au vocabulaire de la famille (HT ou ST) ;
- l'ensemble de codes n'est jamais vide ;
- la date d'expiration est fournie par l'appelant et posterieure a la date de validation ;
- un employe detient au plus une habilitation par famille : une seconde
  creation pour la meme famille ecrase la ligne existante (pas d'historique).
"""

import json
import logging
import sqlite3
from datetime import date
from typing import Iterable, Optional

from habilitations_tracker.config.constants import (
    SEUIL_EXPIRATION_JOURS, VOCABULAIRES, Famille, Statut,
)
from habilitations_tracker.core.exceptions import (
    EmptyCodeSetError, InvalidCodeError, InvalidDateRangeError,
    MissingExpirationError, NotFoundError,
)
from habilitations_tracker.database.db_manager import Database
from habilitations_tracker.habilitations import statut as statut_query
from habilitations_tracker.models.entites import (
    FicheEmploye, Habilitation, HabilitationARenouveler,
)

logger = logging.getLogger("habilitations_tracker.habilitations")


def valider_codes(famille: Famille, codes: Iterable[str]) -> frozenset[str]:
    """Verifie l'appartenance de chaque code au vocabulaire de la famille."""
    ensemble = frozenset(c.strip() for c in codes)
    if not ensemble:
        raise EmptyCodeSetError(
            f"Au moins un code {famille.value} est requis."
        )
    hors_vocabulaire = sorted(ensemble - set(VOCABULAIRES[famille]))
    if hors_vocabulaire:
        raise InvalidCodeError(
            f"Code(s) {', '.join(hors_vocabulaire)} hors du vocabulaire {famille.value} "
            f"({', '.join(VOCABULAIRES[famille])})."
        )
    return ensemble


def valider_dates(date_validation: date, date_expiration: Optional[date]) -> None:
    if date_expiration is None:
        raise MissingExpirationError(
            "La date d'expiration doit etre fournie : la duree de validite depend des codes."
        )
    if date_expiration <= date_validation:
        raise InvalidDateRangeError(
            f"La date d'expiration ({date_expiration.isoformat()}) doit etre posterieure "
            f"a la date de validation ({date_validation.isoformat()})."
        )


def _famille(valeur: Famille | str) -> Famille:
    try:
        return Famille(valeur)
    except ValueError:
        raise InvalidCodeError(
            f"Famille inconnue : '{valeur}' (attendu : HT ou ST)."
        ) from None


def _serialiser_codes(famille: Famille, codes: frozenset[str]) -> str:
    return json.dumps([c for c in VOCABULAIRES[famille] if c in codes])


class HabilitationLedger:
    """Cycle de vie des habilitations d'un employe."""

    def __init__(self, db: Database, seuil_jours: int = SEUIL_EXPIRATION_JOURS):
        self.db = db
        self.seuil_jours = seuil_jours

    # ============================
    # CREATION / RENOUVELLEMENT
    # ============================

    def create(
        self,
        employe_id: int,
        famille: Famille | str,
        codes: Iterable[str],
        date_validation: date,
        date_expiration: date,
        numero: Optional[str] = None,
        document_ref: Optional[str] = None,
        *,
        conn: Optional[sqlite3.Connection] = None,
    ) -> Habilitation:
        """Cree l'habilitation (ou ecrase celle de la meme famille)."""
        habilitation, _ = self.enregistrer(
            employe_id, famille, codes, date_validation, date_expiration,
            numero, document_ref, conn=conn,
        )
        return habilitation

    def enregistrer(
        self,
        employe_id: int,
        famille: Famille | str,
        codes: Iterable[str],
        date_validation: date,
        date_expiration: date,
        numero: Optional[str] = None,
        document_ref: Optional[str] = None,
        *,
        conn: Optional[sqlite3.Connection] = None,
    ) -> tuple[Habilitation, bool]:
        """Comme ``create`` mais indique si une ligne a ete inseree (True) ou ecrasee."""
        famille = _famille(famille)
        ensemble = valider_codes(famille, codes)
        valider_dates(date_validation, date_expiration)
        numero = numero.strip() if numero and numero.strip() else None

        with self.db.transaction(conn) as c:
            if c.execute("SELECT 1 FROM employes WHERE id = ?", (employe_id,)).fetchone() is None:
                raise NotFoundError(f"Employe {employe_id} introuvable.")

            row = c.execute(
                "SELECT id, document_ref FROM habilitations WHERE employe_id = ? AND famille = ?",
                (employe_id, famille.value),
            ).fetchone()

            if row is None:
                cursor = c.execute(
                    """INSERT INTO habilitations
                       (employe_id, famille, codes, numero, date_validation,
                        date_expiration, document_ref)
                       VALUES (?, ?, ?, ?, ?, ?, ?)""",
                    (
                        employe_id, famille.value, _serialiser_codes(famille, ensemble),
                        numero, date_validation.isoformat(), date_expiration.isoformat(),
                        document_ref,
                    ),
                )
                logger.info(
                    "Habilitation %s creee pour l'employe %d (id %d)",
                    famille.value, employe_id, cursor.lastrowid,
                )
                return self.get(cursor.lastrowid, conn=c), True

            self._ecraser(
                c, row["id"], famille, ensemble, numero, date_validation, date_expiration,
                document_ref if document_ref is not None else row["document_ref"],
            )
            return self.get(row["id"], conn=c), False

    def renew(
        self,
        habilitation_id: int,
        codes: Iterable[str],
        date_validation: date,
        date_expiration: Optional[date],
        numero: Optional[str] = None,
        *,
        conn: Optional[sqlite3.Connection] = None,
    ) -> Habilitation:
        """Renouvelle l'habilitation sur place.

        La famille ne change pas ; codes, numero et dates sont ecrases,
        l'identifiant et l'employe sont conserves. La date d'expiration est
        obligatoire : elle n'est jamais deduite d'une duree fixe.
        """
        with self.db.transaction(conn) as c:
            actuelle = self.get(habilitation_id, conn=c)
            ensemble = valider_codes(actuelle.famille, codes)
            valider_dates(date_validation, date_expiration)
            numero = numero.strip() if numero and numero.strip() else None
            self._ecraser(
                c, habilitation_id, actuelle.famille, ensemble, numero,
                date_validation, date_expiration, actuelle.document_ref,
            )
            renouvelee = self.get(habilitation_id, conn=c)
        logger.info(
            "Habilitation %d renouvelee jusqu'au %s",
            habilitation_id, renouvelee.date_expiration.isoformat(),
        )
        return renouvelee

    @staticmethod
    def _ecraser(
        conn: sqlite3.Connection,
        habilitation_id: int,
        famille: Famille,
        codes: frozenset[str],
        numero: Optional[str],
        date_validation: date,
        date_expiration: date,
        document_ref: Optional[str],
    ) -> None:
        conn.execute(
            """UPDATE habilitations
               SET codes = ?, numero = ?, date_validation = ?, date_expiration = ?,
                   document_ref = ?, updated_at = datetime('now')
               WHERE id = ?""",
            (
                _serialiser_codes(famille, codes), numero, date_validation.isoformat(),
                date_expiration.isoformat(), document_ref, habilitation_id,
            ),
        )

    def supprimer(self, habilitation_id: int, *, conn: Optional[sqlite3.Connection] = None) -> None:
        with self.db.transaction(conn) as c:
            self.get(habilitation_id, conn=c)
            c.execute("DELETE FROM habilitations WHERE id = ?", (habilitation_id,))
        logger.info("Habilitation %d supprimee", habilitation_id)

    # ============================
    # LECTURE
    # ============================

    def get(
        self, habilitation_id: int, *, conn: Optional[sqlite3.Connection] = None,
    ) -> Habilitation:
        with self.db.lecture(conn) as c:
            row = c.execute(
                "SELECT * FROM habilitations WHERE id = ?", (habilitation_id,)
            ).fetchone()
        if row is None:
            raise NotFoundError(f"Habilitation {habilitation_id} introuvable.")
        return _habilitation_depuis_ligne(row)

    def lister_pour_employe(
        self, employe_id: int, *, conn: Optional[sqlite3.Connection] = None,
    ) -> list[Habilitation]:
        with self.db.lecture(conn) as c:
            rows = c.execute(
                "SELECT * FROM habilitations WHERE employe_id = ? ORDER BY famille",
                (employe_id,),
            ).fetchall()
        return [_habilitation_depuis_ligne(r) for r in rows]

    def lister_par_employe(self) -> dict[int, list[Habilitation]]:
        """Toutes les habilitations, regroupees par employe."""
        groupes: dict[int, list[Habilitation]] = {}
        for row in self.db.execute("SELECT * FROM habilitations ORDER BY employe_id, famille"):
            hab = _habilitation_depuis_ligne(row)
            groupes.setdefault(hab.employe_id, []).append(hab)
        return groupes

    # ============================
    # CLASSEMENT
    # ============================

    def classify(self, habilitation: Habilitation, au: date) -> Statut:
        return statut_query.classer(habilitation, au, self.seuil_jours)

    @staticmethod
    def latest_representative(habilitations: Iterable[Habilitation]) -> Optional[Habilitation]:
        return statut_query.latest_representative(habilitations)

    def expired_as_of(
        self, fiches: Iterable[FicheEmploye], au: date,
    ) -> list[HabilitationARenouveler]:
        return statut_query.expirees_au(fiches, au, self.seuil_jours)


def _habilitation_depuis_ligne(row: sqlite3.Row) -> Habilitation:
    return Habilitation(
        id=row["id"],
        employe_id=row["employe_id"],
        famille=Famille(row["famille"]),
        codes=frozenset(json.loads(row["codes"])),
        date_validation=date.fromisoformat(row["date_validation"]),
        date_expiration=date.fromisoformat(row["date_expiration"]),
        numero=row["numero"],
        document_ref=row["document_ref"],
    )
