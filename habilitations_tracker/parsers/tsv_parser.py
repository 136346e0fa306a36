"""Lecteur des exports texte separes par tabulations (copier-coller Excel).

Le format source ne garantit pas un saut de ligne propre entre deux
enregistrements : des retours a la ligne peuvent apparaitre au milieu
d'une cellule, et la frontiere entre deux lignes peut etre reduite a un
simple espace. Le decoupage se fait donc sur les tabulations uniquement,
et une nouvelle ligne commence apres ``nb_colonnes`` cellules : la
derniere cellule d'une ligne partage sa tabulation avec la premiere
cellule de la suivante, separees par un saut de ligne (ou un blanc).
"""

import re
from pathlib import Path
from typing import Any, Optional

from habilitations_tracker.core.exceptions import ParseError
from habilitations_tracker.parsers.base_parser import BaseParser, LigneBrute

_FRONTIERE_BLANC = re.compile(r"^(.*?)\s+(\S+)$", re.DOTALL)


def _separer_frontiere(cellule: str, suite: bool = True) -> tuple[str, Optional[str]]:
    """Separe la derniere cellule d'une ligne du debut de la ligne suivante.

    Sans cellule apres celle-ci (``suite`` faux), aucune ligne ne peut
    commencer : seul un saut de ligne final est retire, les blancs internes
    ("Date Expiration") sont conserves.
    """
    if "\n" in cellule:
        fin, debut = cellule.rsplit("\n", 1)
        return fin, debut
    if not suite:
        return cellule, None
    m = _FRONTIERE_BLANC.match(cellule)
    if m:
        return m.group(1), m.group(2)
    return cellule, None


def decouper_lignes(texte: str, nb_colonnes: int) -> list[list[str]]:
    """Decoupe le texte brut en lignes logiques de ``nb_colonnes`` cellules.

    Un reliquat incomplet en fin de texte est conserve tel quel (il sera
    rejete ligne par ligne par le rapprochement) sauf s'il est vide.
    """
    if nb_colonnes < 2:
        raise ValueError("Le schema d'import doit compter au moins deux colonnes.")
    texte = texte.lstrip("\ufeff").replace("\r\n", "\n").replace("\r", "\n")

    lignes: list[list[str]] = []
    courante: list[str] = []
    cellules = texte.split("\t")
    for i, cellule in enumerate(cellules):
        if len(courante) == nb_colonnes - 1:
            fin, debut = _separer_frontiere(cellule, suite=i < len(cellules) - 1)
            courante.append(fin)
            lignes.append(courante)
            courante = [debut] if debut is not None else []
        else:
            courante.append(cellule)

    if any(c.strip() for c in courante):
        lignes.append(courante)
    return lignes


class TSVParser(BaseParser):
    """Lit les fichiers .tsv / .txt et les charges utiles texte."""

    def peut_traiter(self, chemin: Path) -> bool:
        return chemin.suffix.lower() in (".tsv", ".txt")

    def lire_texte(self, texte: str) -> list[LigneBrute]:
        return self.numeroter(decouper_lignes(texte, self.nb_colonnes))

    def lire_lignes(self, chemin: Path) -> list[LigneBrute]:
        return self.lire_texte(self._lire_fichier(chemin))

    def extraire_metadata(self, chemin: Path) -> dict[str, Any]:
        metadata: dict[str, Any] = {"format": "tsv"}
        try:
            lignes = decouper_lignes(self._lire_fichier(chemin), self.nb_colonnes)
        except ParseError as e:
            metadata["erreur_lecture"] = str(e)
            return metadata
        metadata["en_tete"] = bool(lignes) and self.est_en_tete(lignes[0])
        metadata["nb_lignes"] = len(lignes) - (1 if metadata["en_tete"] else 0)
        return metadata

    @staticmethod
    def _lire_fichier(chemin: Path) -> str:
        try:
            with open(chemin, "r", encoding="utf-8-sig") as f:
                return f.read()
        except UnicodeDecodeError:
            with open(chemin, "r", encoding="latin-1") as f:
                return f.read()
        except OSError as e:
            raise ParseError(f"Impossible de lire le fichier {chemin}: {e}") from e
