"""Utilitaires de normalisation de texte."""

import re
import unicodedata

_SAUTS_DE_LIGNE = re.compile(r"[\r\n]+")


def normaliser_cellule(valeur) -> str:
    """Nettoie une cellule brute de tableau (guillemets Excel, sauts de ligne)."""
    if valeur is None:
        return ""
    texte = str(valeur)
    texte = texte.strip()
    if len(texte) >= 2 and texte[0] == '"' and texte[-1] == '"':
        texte = texte[1:-1].replace('""', '"')
    return _SAUTS_DE_LIGNE.sub(" ", texte).strip()


def normaliser_nom(valeur: str | None) -> str:
    """Nom d'organigramme.

    Meme nettoyage qu'une cellule : guillemets Excel retires, saut de ligne
    remplace par un espace, espaces de bord retires. La casse et les espaces
    internes (doubles espaces compris) sont conserves : "Equipe Conduite  Casa"
    et "Equipe Conduite Casa" restent deux equipes distinctes.
    """
    return normaliser_cellule(valeur)


def cle_tri_locale(valeur: str) -> tuple[str, str]:
    """Cle de tri insensible aux accents et a la casse (ordre alphabetique francais).

    Le second element departage les chaines identiques a l'accent pres.
    """
    decompose = unicodedata.normalize("NFKD", valeur)
    sans_accents = "".join(c for c in decompose if not unicodedata.combining(c))
    return sans_accents.casefold(), valeur
