"""Classement temporel des habilitations et selections pour les listes de travail.

Fonctions pures : aucune lecture en base.
"""

from collections import Counter
from datetime import date
from typing import Iterable, Optional

from habilitations_tracker.config.constants import SEUIL_EXPIRATION_JOURS, Statut
from habilitations_tracker.models.entites import (
    FicheEmploye, Habilitation, HabilitationARenouveler,
)
from habilitations_tracker.utils.date_utils import jours_restants


def classer(
    habilitation: Habilitation, au: date, seuil_jours: int = SEUIL_EXPIRATION_JOURS,
) -> Statut:
    """Expiree si la date est depassee, expire bientot dans les ``seuil_jours``, valide sinon.

    Une habilitation qui expire aujourd'hui n'est pas encore expiree.
    """
    jours = jours_restants(habilitation.date_expiration, au)
    if jours < 0:
        return Statut.EXPIREE
    if jours <= seuil_jours:
        return Statut.EXPIRE_BIENTOT
    return Statut.VALIDE


def latest_representative(habilitations: Iterable[Habilitation]) -> Optional[Habilitation]:
    """Habilitation d'en-tete d'un employe : celle qui expire le plus tard."""
    return max(habilitations, key=lambda h: h.date_expiration, default=None)


def _selection(
    fiches: Iterable[FicheEmploye], au: date, statut: Statut, seuil_jours: int,
) -> list[HabilitationARenouveler]:
    selection = []
    for fiche in fiches:
        for hab in fiche.habilitations:
            if classer(hab, au, seuil_jours) == statut:
                selection.append(HabilitationARenouveler(hab, fiche.identite))
    selection.sort(key=lambda e: (e.habilitation.date_expiration, e.employe.matricule))
    return selection


def expirees_au(
    fiches: Iterable[FicheEmploye], au: date, seuil_jours: int = SEUIL_EXPIRATION_JOURS,
) -> list[HabilitationARenouveler]:
    """Toutes les habilitations expirees a la date ``au``, avec l'identite de l'employe."""
    return _selection(fiches, au, Statut.EXPIREE, seuil_jours)


def expirant_bientot_au(
    fiches: Iterable[FicheEmploye], au: date, seuil_jours: int = SEUIL_EXPIRATION_JOURS,
) -> list[HabilitationARenouveler]:
    return _selection(fiches, au, Statut.EXPIRE_BIENTOT, seuil_jours)


def resume_statuts(
    fiches: Iterable[FicheEmploye], au: date, seuil_jours: int = SEUIL_EXPIRATION_JOURS,
) -> dict[str, int]:
    """Nombre d'employes par statut de leur habilitation d'en-tete."""
    compteur: Counter = Counter({s.value: 0 for s in Statut})
    compteur["sans_habilitation"] = 0
    for fiche in fiches:
        tete = latest_representative(fiche.habilitations)
        if tete is None:
            compteur["sans_habilitation"] += 1
        else:
            compteur[classer(tete, au, seuil_jours).value] += 1
    return dict(compteur)
