"""Vues de lecture : liste des employes et liste de travail du renouvellement."""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from habilitations_tracker.config.constants import Statut
from habilitations_tracker.employes.employee_registry import EmployeeRegistry
from habilitations_tracker.habilitations import statut as statut_query
from habilitations_tracker.habilitations.ledger import HabilitationLedger
from habilitations_tracker.hierarchie.hierarchy_store import HierarchyStore
from habilitations_tracker.models.entites import (
    FicheEmploye, Habilitation, HabilitationARenouveler,
)


@dataclass
class LigneTableau:
    """Une ligne de la liste des employes avec son habilitation d'en-tete."""
    fiche: FicheEmploye
    en_tete: Optional[Habilitation]
    statut: Optional[Statut]


class ConsultationService:
    """Assemble employes, libelles d'organigramme et habilitations."""

    def __init__(
        self,
        hierarchie: HierarchyStore,
        registre: EmployeeRegistry,
        ledger: HabilitationLedger,
    ):
        self.hierarchie = hierarchie
        self.registre = registre
        self.ledger = ledger

    def fiche(self, employe_id: int) -> FicheEmploye:
        employe = self.registre.get(employe_id)
        return FicheEmploye(
            employe=employe,
            noms=self.hierarchie.noms_chemin(employe.chemin),
            habilitations=self.ledger.lister_pour_employe(employe_id),
        )

    def fiches(
        self,
        recherche: Optional[str] = None,
        division_id: Optional[int] = None,
        tri: str = "matricule",
    ) -> list[FicheEmploye]:
        employes = self.registre.lister(recherche, division_id, tri)
        habilitations = self.ledger.lister_par_employe()
        return [
            FicheEmploye(
                employe=e,
                noms=self.hierarchie.noms_chemin(e.chemin),
                habilitations=habilitations.get(e.id, []),
            )
            for e in employes
        ]

    def tableau(
        self,
        au: date,
        recherche: Optional[str] = None,
        division_id: Optional[int] = None,
        tri: str = "matricule",
    ) -> list[LigneTableau]:
        lignes = []
        for fiche in self.fiches(recherche, division_id, tri):
            tete = self.ledger.latest_representative(fiche.habilitations)
            lignes.append(LigneTableau(
                fiche, tete, self.ledger.classify(tete, au) if tete else None,
            ))
        return lignes

    def a_renouveler(self, au: date) -> list[HabilitationARenouveler]:
        return self.ledger.expired_as_of(self.fiches(), au)

    def expirant_bientot(self, au: date) -> list[HabilitationARenouveler]:
        return statut_query.expirant_bientot_au(self.fiches(), au, self.ledger.seuil_jours)

    def resume(
        self,
        au: date,
        recherche: Optional[str] = None,
        division_id: Optional[int] = None,
    ) -> dict[str, int]:
        """Compteurs par statut, sur les memes filtres que ``tableau``."""
        return statut_query.resume_statuts(
            self.fiches(recherche, division_id), au, self.ledger.seuil_jours,
        )
