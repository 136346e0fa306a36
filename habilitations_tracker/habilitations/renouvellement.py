"""Demande de renouvellement : conversion des dates textuelles puis ``renew``."""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from habilitations_tracker.habilitations.ledger import HabilitationLedger
from habilitations_tracker.models.entites import Habilitation
from habilitations_tracker.security.audit_logger import AuditLogger
from habilitations_tracker.utils.date_utils import parser_date_renouvellement

logger = logging.getLogger("habilitations_tracker.renouvellement")


@dataclass
class DemandeRenouvellement:
    """Demande recue a la frontiere (formulaire, API, CLI).

    Les dates sont au format "D/M/YYYY" ou "YYYY-MM-DD" ; la date
    d'expiration est obligatoire pour aboutir mais peut etre absente de
    la demande, auquel cas le renouvellement est refuse.
    """
    habilitation_id: int
    codes: list[str] = field(default_factory=list)
    date_validation: str | date = ""
    date_expiration: Optional[str | date] = None
    numero: Optional[str] = None


class RenewalWorkflow:
    """Applique les demandes de renouvellement au registre."""

    def __init__(self, ledger: HabilitationLedger, audit: Optional[AuditLogger] = None):
        self.ledger = ledger
        self.audit = audit

    def renouveler(self, demande: DemandeRenouvellement, acteur: str = "systeme") -> Habilitation:
        logger.debug("Demande de renouvellement de l'habilitation %d", demande.habilitation_id)
        date_validation = parser_date_renouvellement(demande.date_validation)
        date_expiration = (
            parser_date_renouvellement(demande.date_expiration)
            if demande.date_expiration not in (None, "") else None
        )

        habilitation = self.ledger.renew(
            demande.habilitation_id,
            demande.codes,
            date_validation,
            date_expiration,
            demande.numero,
        )
        if self.audit:
            self.audit.log_renouvellement(
                acteur, habilitation.id, habilitation.codes_ordonnes(),
                habilitation.date_expiration.isoformat(),
            )
        return habilitation
