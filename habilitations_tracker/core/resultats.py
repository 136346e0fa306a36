"""Resultats structures renvoyes a la frontiere (API, CLI, import).

Les erreurs metier ne traversent pas la frontiere sous forme d'exceptions :
elles sont converties en ``{"error": kind, "detail": message}``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Generic, Optional, TypeVar

from habilitations_tracker.core.exceptions import HabilitationsError

T = TypeVar("T")


class Issue(str, Enum):
    """Issue d'une ligne d'import ou d'un enregistrement."""
    CREATED = "Created"
    UPDATED = "Updated"
    FAILED = "Failed"


@dataclass
class Resultat(Generic[T]):
    """Resultat d'une operation unitaire : ``ok`` ou ``erreur``."""
    ok: Optional[T] = None
    erreur: Optional[str] = None
    detail: str = ""

    @property
    def succes(self) -> bool:
        return self.erreur is None

    @classmethod
    def depuis_exception(cls, exc: HabilitationsError) -> "Resultat":
        return cls(erreur=exc.kind, detail=str(exc))

    def to_dict(self, serialiser: Callable[[T], Any] = lambda v: v) -> dict:
        if self.succes:
            return {"ok": serialiser(self.ok)}
        return {"error": self.erreur, "detail": self.detail}


def executer(operation: Callable[..., T], *args, **kwargs) -> Resultat[T]:
    """Execute une operation unitaire et convertit les erreurs metier en resultat."""
    try:
        return Resultat(ok=operation(*args, **kwargs))
    except HabilitationsError as e:
        return Resultat.depuis_exception(e)


@dataclass
class ResultatLigne:
    """Issue d'une ligne d'import."""
    index: int
    issue: Issue
    matricule: str = ""
    detail: str = ""
    raison: Optional[str] = None
    habilitations: dict[str, Issue] = field(default_factory=dict)


@dataclass
class ResultatImport:
    """Bilan d'un lot d'import."""
    lignes: list[ResultatLigne] = field(default_factory=list)

    def _compter(self, issue: Issue) -> int:
        return sum(1 for r in self.lignes if r.issue == issue)

    @property
    def nb_crees(self) -> int:
        return self._compter(Issue.CREATED)

    @property
    def nb_mis_a_jour(self) -> int:
        return self._compter(Issue.UPDATED)

    @property
    def nb_echecs(self) -> int:
        return self._compter(Issue.FAILED)

    @property
    def echecs(self) -> list[tuple[int, str]]:
        """Paires (index de ligne, raison) des lignes rejetees."""
        return [(r.index, r.raison) for r in self.lignes if r.issue == Issue.FAILED]

    def issues_habilitations(self) -> list[Issue]:
        return [i for r in self.lignes for i in r.habilitations.values()]

    def to_dict(self) -> dict:
        return {
            "created": self.nb_crees,
            "updated": self.nb_mis_a_jour,
            "failed": self.nb_echecs,
            "habilitations": {
                "created": sum(1 for i in self.issues_habilitations() if i == Issue.CREATED),
                "updated": sum(1 for i in self.issues_habilitations() if i == Issue.UPDATED),
            },
            "errors": [
                {"row": r.index, "matricule": r.matricule, "reason": r.raison, "detail": r.detail}
                for r in self.lignes if r.issue == Issue.FAILED
            ],
        }
