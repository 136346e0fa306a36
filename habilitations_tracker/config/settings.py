"""Configuration globale de l'application."""

import os
from pathlib import Path
from dataclasses import dataclass, field

from habilitations_tracker.config.constants import NB_COLONNES_IMPORT, SEUIL_EXPIRATION_JOURS


@dataclass
class StatutConfig:
    """Configuration du classement des habilitations."""
    seuil_expiration_jours: int = SEUIL_EXPIRATION_JOURS


@dataclass
class ImportConfig:
    """Configuration de l'import en masse."""
    nb_colonnes: int = NB_COLONNES_IMPORT
    max_file_size_mb: int = 20


@dataclass
class ApiConfig:
    """Configuration de la couche HTTP."""
    jetons: set[str] = field(default_factory=lambda: {
        j.strip()
        for j in os.getenv("HABILITATIONS_API_TOKENS", "").split(",")
        if j.strip()
    })


@dataclass
class AppConfig:
    """Configuration principale de l'application."""
    data_dir: Path = field(
        default_factory=lambda: Path(os.getenv("HABILITATIONS_DATA_DIR", "data"))
    )
    db_path: Path = field(default=None)
    audit_log_path: Path = field(default=None)

    statut: StatutConfig = field(default_factory=StatutConfig)
    importation: ImportConfig = field(default_factory=ImportConfig)
    api: ApiConfig = field(default_factory=ApiConfig)

    def __post_init__(self):
        self.data_dir = Path(self.data_dir)
        if self.db_path is None:
            self.db_path = Path(os.getenv(
                "HABILITATIONS_DB_PATH", str(self.data_dir / "habilitations.db")
            ))
        if self.audit_log_path is None:
            self.audit_log_path = self.data_dir / "audit.log"

        self.data_dir.mkdir(parents=True, exist_ok=True)
