"""Controle d'acces aux operations.

Le jeton est opaque : un verificateur l'accepte (et retourne le principal)
ou le refuse. Aucune action n'est entreprise sur refus en dehors du rejet
de l'appel.
"""

import hmac
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from habilitations_tracker.core.exceptions import UnauthorizedError


@dataclass(frozen=True)
class Principal:
    """Appelant authentifie."""
    identifiant: str


Verificateur = Callable[[str], Optional[Principal]]


class VerificateurJetonStatique:
    """Accepte une liste fixe de jetons (variable ``HABILITATIONS_API_TOKENS``)."""

    def __init__(self, jetons: Iterable[str]):
        self._jetons = [j for j in jetons if j]

    def __call__(self, jeton: str) -> Optional[Principal]:
        for connu in self._jetons:
            if hmac.compare_digest(connu.encode(), jeton.encode()):
                # Le principal est designe par un prefixe du jeton, jamais par le jeton entier
                return Principal(identifiant=f"jeton-{connu[:4]}")
        return None


def extraire_jeton_bearer(en_tete: Optional[str]) -> Optional[str]:
    """Extrait le jeton d'un en-tete ``Authorization: Bearer <jeton>``."""
    if en_tete and en_tete.startswith("Bearer "):
        return en_tete[7:].strip() or None
    return None


def exiger_principal(jeton: Optional[str], verificateur: Verificateur) -> Principal:
    if not jeton:
        raise UnauthorizedError("Non authentifie")
    principal = verificateur(jeton)
    if principal is None:
        raise UnauthorizedError("Jeton invalide ou expire")
    return principal
