"""Assemblage des composants autour d'une base explicite.

Le point d'entree (CLI ou application web) cree la base une fois et
transmet le meme handle a chaque composant.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from habilitations_tracker.config.settings import AppConfig
from habilitations_tracker.database.db_manager import Database
from habilitations_tracker.employes.employee_registry import EmployeeRegistry
from habilitations_tracker.habilitations.consultation import ConsultationService
from habilitations_tracker.habilitations.ledger import HabilitationLedger
from habilitations_tracker.habilitations.renouvellement import RenewalWorkflow
from habilitations_tracker.hierarchie.hierarchy_store import HierarchyStore
from habilitations_tracker.importation.reconciler import BulkImportReconciler
from habilitations_tracker.security.audit_logger import AuditLogger

logger = logging.getLogger("habilitations_tracker")


@dataclass
class Composants:
    config: AppConfig
    db: Database
    audit: AuditLogger
    hierarchie: HierarchyStore
    registre: EmployeeRegistry
    ledger: HabilitationLedger
    consultation: ConsultationService
    reconciler: BulkImportReconciler
    renouvellement: RenewalWorkflow


def assembler(config: Optional[AppConfig] = None) -> Composants:
    """Ouvre la base et construit tous les composants."""
    config = config or AppConfig()
    db = Database(config.db_path)
    audit = AuditLogger(config.audit_log_path)
    hierarchie = HierarchyStore(db)
    registre = EmployeeRegistry(db, hierarchie)
    ledger = HabilitationLedger(db, config.statut.seuil_expiration_jours)
    logger.debug("Composants assembles sur %s", config.db_path)
    return Composants(
        config=config,
        db=db,
        audit=audit,
        hierarchie=hierarchie,
        registre=registre,
        ledger=ledger,
        consultation=ConsultationService(hierarchie, registre, ledger),
        reconciler=BulkImportReconciler(
            db, hierarchie, registre, ledger, audit,
            nb_colonnes=config.importation.nb_colonnes,
            max_file_size_mb=config.importation.max_file_size_mb,
        ),
        renouvellement=RenewalWorkflow(ledger, audit),
    )
