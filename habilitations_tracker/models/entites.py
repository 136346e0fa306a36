"""Modeles de donnees : organigramme, employes et habilitations."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from habilitations_tracker.config.constants import Famille, Niveau, VOCABULAIRES


# --- Organigramme ---

@dataclass(frozen=True)
class NoeudHierarchique:
    """Un noeud de l'organigramme (Division, Service, Section ou Equipe)."""
    id: int
    niveau: Niveau
    nom: str
    parent_id: Optional[int] = None


@dataclass(frozen=True)
class CheminHierarchique:
    """Chemin resolu Division > Service > Section > Equipe.

    L'equipe est le seul niveau facultatif : certaines sections de
    l'organigramme n'ont pas de subdivision en equipes.
    """
    division_id: int
    service_id: int
    section_id: int
    equipe_id: Optional[int] = None


@dataclass(frozen=True)
class NomsChemin:
    """Libelles du chemin hierarchique d'un employe."""
    division: str
    service: str
    section: str
    equipe: str = ""


# --- Employe ---

@dataclass
class Employe:
    """Un agent, identifie par son matricule."""
    id: int
    matricule: str
    prenom: str
    nom: str
    division_id: int
    service_id: int
    section_id: int
    equipe_id: Optional[int] = None

    @property
    def chemin(self) -> CheminHierarchique:
        return CheminHierarchique(
            self.division_id, self.service_id, self.section_id, self.equipe_id,
        )

    @property
    def nom_complet(self) -> str:
        return f"{self.nom} {self.prenom}".strip()


# --- Habilitation ---

@dataclass
class Habilitation:
    """Titre d'habilitation electrique d'un employe pour une famille."""
    id: int
    employe_id: int
    famille: Famille
    codes: frozenset[str]
    date_validation: date
    date_expiration: date
    numero: Optional[str] = None
    document_ref: Optional[str] = None

    def codes_ordonnes(self) -> list[str]:
        """Codes dans l'ordre du vocabulaire de la famille."""
        return [c for c in VOCABULAIRES[self.famille] if c in self.codes]


@dataclass(frozen=True)
class IdentiteEmploye:
    """Champs d'identite repris dans les listes de travail."""
    employe_id: int
    matricule: str
    nom: str
    prenom: str


@dataclass
class FicheEmploye:
    """Un employe avec ses libelles d'organigramme et ses habilitations."""
    employe: Employe
    noms: NomsChemin
    habilitations: list[Habilitation] = field(default_factory=list)

    @property
    def identite(self) -> IdentiteEmploye:
        return IdentiteEmploye(
            self.employe.id, self.employe.matricule,
            self.employe.nom, self.employe.prenom,
        )


@dataclass(frozen=True)
class HabilitationARenouveler:
    """Entree de la liste de travail du renouvellement."""
    habilitation: Habilitation
    employe: IdentiteEmploye
