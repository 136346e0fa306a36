"""Lecteur des classeurs Excel (.xlsx) de suivi des habilitations."""

from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional

import openpyxl

from habilitations_tracker.config.constants import NB_COLONNES_IMPORT
from habilitations_tracker.core.exceptions import ParseError
from habilitations_tracker.parsers.base_parser import BaseParser, LigneBrute


class ExcelParser(BaseParser):
    """Lit la premiere feuille (ou une feuille nommee) d'un classeur .xlsx."""

    def __init__(self, nb_colonnes: int = NB_COLONNES_IMPORT, feuille: Optional[str] = None):
        super().__init__(nb_colonnes)
        self.feuille = feuille

    def peut_traiter(self, chemin: Path) -> bool:
        return chemin.suffix.lower() == ".xlsx"

    def extraire_metadata(self, chemin: Path) -> dict[str, Any]:
        try:
            wb = openpyxl.load_workbook(chemin, read_only=True, data_only=True)
        except Exception as e:
            return {"format": "excel", "erreur": str(e)}
        metadata = {
            "format": "excel",
            "feuilles": wb.sheetnames,
            "nb_feuilles": len(wb.sheetnames),
        }
        wb.close()
        return metadata

    def lire_lignes(self, chemin: Path) -> list[LigneBrute]:
        try:
            wb = openpyxl.load_workbook(chemin, read_only=True, data_only=True)
        except Exception as e:
            raise ParseError(f"Impossible de lire le fichier Excel {chemin}: {e}") from e

        try:
            if self.feuille:
                if self.feuille not in wb.sheetnames:
                    raise ParseError(f"Feuille '{self.feuille}' absente de {chemin.name}.")
                ws = wb[self.feuille]
            else:
                ws = wb[wb.sheetnames[0]]
            lignes = [
                self._ajuster([self._valeur_cellule(v) for v in row])
                for row in ws.iter_rows(values_only=True)
                if row
            ]
        finally:
            wb.close()

        return self.numeroter(lignes)

    def _ajuster(self, cellules: list[Any]) -> list[Any]:
        """Ramene la ligne a la largeur du schema (colonnes vides de fin ignorees)."""
        while len(cellules) > self.nb_colonnes and cellules[-1] in ("", None):
            cellules.pop()
        if len(cellules) < self.nb_colonnes:
            cellules = cellules + [""] * (self.nb_colonnes - len(cellules))
        return cellules

    @staticmethod
    def _valeur_cellule(valeur: Any) -> Any:
        """Les dates restent natives ; les matricules numeriques redeviennent du texte."""
        if valeur is None:
            return ""
        if isinstance(valeur, (datetime, date)):
            return valeur
        if isinstance(valeur, float) and valeur.is_integer():
            return str(int(valeur))
        return str(valeur)
