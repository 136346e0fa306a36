"""Factory pour selectionner automatiquement le bon lecteur d'import."""

from pathlib import Path

from habilitations_tracker.core.exceptions import UnsupportedFormatError
from habilitations_tracker.config.constants import NB_COLONNES_IMPORT, SUPPORTED_EXTENSIONS
from habilitations_tracker.parsers.base_parser import BaseParser
from habilitations_tracker.parsers.excel_parser import ExcelParser
from habilitations_tracker.parsers.tsv_parser import TSVParser


class ParserFactory:
    """Selectionne et instancie le lecteur adapte au type de fichier."""

    def __init__(self, nb_colonnes: int = NB_COLONNES_IMPORT):
        self._parsers: list[BaseParser] = [
            TSVParser(nb_colonnes),
            ExcelParser(nb_colonnes),
        ]

    def get_parser(self, chemin: Path) -> BaseParser:
        """Retourne le lecteur adapte au fichier donne."""
        ext = chemin.suffix.lower()
        if ext not in SUPPORTED_EXTENSIONS:
            raise UnsupportedFormatError(
                f"Format '{ext}' non supporte. "
                f"Formats acceptes : {', '.join(SUPPORTED_EXTENSIONS.keys())}"
            )

        for parser in self._parsers:
            if parser.peut_traiter(chemin):
                return parser

        raise UnsupportedFormatError(
            f"Aucun lecteur disponible pour le fichier {chemin.name}"
        )

    def formats_supportes(self) -> list[str]:
        return list(SUPPORTED_EXTENSIONS.keys())
