"""Journal d'audit append-only des operations sur les habilitations."""

import hashlib
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

logger = logging.getLogger("habilitations_tracker.audit")


def empreinte_sha256(contenu: str | bytes) -> str:
    """Empreinte SHA-256 d'une charge d'import (texte ou octets)."""
    if isinstance(contenu, str):
        contenu = contenu.encode("utf-8")
    return hashlib.sha256(contenu).hexdigest()


class AuditLogger:
    """Journalise les mutations de maniere immutable (une ligne JSON par entree)."""

    def __init__(self, log_path: Path):
        self.log_path = Path(log_path)
        self.log_path.parent.mkdir(parents=True, exist_ok=True)

    def log(
        self,
        operation: str,
        acteur: str,
        *,
        details: Optional[dict] = None,
        fichier: Optional[str] = None,
        empreinte: Optional[str] = None,
        resultat: str = "succes",
    ) -> None:
        """Ajoute une entree au journal d'audit."""
        entry = {
            "timestamp": datetime.now().isoformat(),
            "acteur": acteur,
            "operation": operation,
            "resultat": resultat,
        }
        if fichier:
            entry["fichier"] = fichier
        if empreinte:
            entry["empreinte"] = empreinte
        if details:
            entry["details"] = details

        line = json.dumps(entry, ensure_ascii=False)
        try:
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError as e:
            logger.error("Impossible d'ecrire dans le journal d'audit: %s", e)

    def log_import(
        self,
        acteur: str,
        bilan: dict,
        *,
        fichier: Optional[str] = None,
        empreinte: Optional[str] = None,
    ) -> None:
        self.log(
            "import_employes",
            acteur,
            details={k: bilan[k] for k in ("created", "updated", "failed") if k in bilan},
            fichier=fichier,
            empreinte=empreinte,
            resultat="succes" if not bilan.get("failed") else "partiel",
        )

    def log_renouvellement(
        self, acteur: str, habilitation_id: int, codes: list[str], date_expiration: str,
    ) -> None:
        self.log(
            "renouvellement",
            acteur,
            details={
                "habilitation_id": habilitation_id,
                "codes": codes,
                "date_expiration": date_expiration,
            },
        )

    def log_suppression(self, acteur: str, entite: str, entite_id: int, **details) -> None:
        self.log(
            f"suppression_{entite}",
            acteur,
            details={"id": entite_id, **details},
        )

    def log_erreur(self, acteur: str, operation: str, erreur: str) -> None:
        self.log(operation, acteur, details={"erreur": erreur}, resultat="echec")

    def lire_journal(self) -> list[dict]:
        """Lit toutes les entrees du journal."""
        if not self.log_path.exists():
            return []
        entries = []
        with open(self.log_path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line:
                    entries.append(json.loads(line))
        return entries
