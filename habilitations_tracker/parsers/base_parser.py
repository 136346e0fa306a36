"""Classe de base abstraite pour les lecteurs de fichiers d'import."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from habilitations_tracker.config.constants import EN_TETE_MARQUEUR, NB_COLONNES_IMPORT
from habilitations_tracker.utils.texte_utils import normaliser_cellule


@dataclass
class LigneBrute:
    """Une ligne logique du tableau, avant interpretation.

    ``index`` est le numero de ligne de donnees (a partir de 1, en-tete exclu).
    Les cellules sont des chaines ou, pour Excel, des valeurs natives (dates).
    """
    index: int
    cellules: list[Any] = field(default_factory=list)


class BaseParser(ABC):
    """Interface commune pour tous les lecteurs."""

    def __init__(self, nb_colonnes: int = NB_COLONNES_IMPORT):
        self.nb_colonnes = nb_colonnes

    @abstractmethod
    def peut_traiter(self, chemin: Path) -> bool:
        """Verifie si ce lecteur peut traiter le fichier donne."""

    @abstractmethod
    def lire_lignes(self, chemin: Path) -> list[LigneBrute]:
        """Lit le fichier et retourne ses lignes logiques (sans l'en-tete)."""

    @abstractmethod
    def extraire_metadata(self, chemin: Path) -> dict[str, Any]:
        """Extrait les metadonnees du fichier."""

    @staticmethod
    def est_en_tete(cellules: list[Any]) -> bool:
        return bool(cellules) and normaliser_cellule(cellules[0]).upper() == EN_TETE_MARQUEUR

    @staticmethod
    def numeroter(lignes: list[list[Any]]) -> list[LigneBrute]:
        """Retire l'en-tete eventuel et les lignes vides, puis numerote."""
        if lignes and BaseParser.est_en_tete(lignes[0]):
            lignes = lignes[1:]
        resultat = []
        for cellules in lignes:
            if not any(normaliser_cellule(c) for c in cellules):
                continue
            resultat.append(LigneBrute(index=len(resultat) + 1, cellules=cellules))
        return resultat
