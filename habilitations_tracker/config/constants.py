"""
Constantes metier des habilitations electriques.

- Familles d'habilitation (HT / ST) et leurs vocabulaires de codes
- Seuil de classement "expire bientot"
- Schema fixe des colonnes du fichier d'import
"""

from enum import Enum


class Famille(str, Enum):
    """Familles d'habilitation, chacune avec son propre vocabulaire."""
    HT = "HT"
    ST = "ST"


class Statut(str, Enum):
    """Statut temporel d'une habilitation."""
    EXPIREE = "expired"
    EXPIRE_BIENTOT = "expiring-soon"
    VALIDE = "valid"


# --- Vocabulaires (ordre de presentation) ---

CODES_HT = ("H0V", "B0V", "H1V", "B1V", "H2V", "B2V", "HC", "BR", "BC")
CODES_ST = ("H1N", "H1T", "H2N", "H2T")

VOCABULAIRES: dict[Famille, tuple[str, ...]] = {
    Famille.HT: CODES_HT,
    Famille.ST: CODES_ST,
}

# Nombre de jours restants en dessous duquel une habilitation "expire bientot"
SEUIL_EXPIRATION_JOURS = 30


# --- Niveaux de l'organigramme ---

class Niveau(str, Enum):
    DIVISION = "division"
    SERVICE = "service"
    SECTION = "section"
    EQUIPE = "equipe"


# niveau -> (table, colonne du parent)
TABLES_NIVEAUX: dict[Niveau, tuple[str, str | None]] = {
    Niveau.DIVISION: ("divisions", None),
    Niveau.SERVICE: ("services", "division_id"),
    Niveau.SECTION: ("sections", "service_id"),
    Niveau.EQUIPE: ("equipes", "section_id"),
}

NIVEAUX_ORDONNES = (Niveau.DIVISION, Niveau.SERVICE, Niveau.SECTION, Niveau.EQUIPE)


# --- Schema du fichier d'import (tabulations, 26 colonnes) ---

COLONNES_IMPORT = (
    "MATRICULE", "Nom", "Prénom", "",
    "DIVISION", "SERVICE", "SECTION", "EQUIPE", "Fonction",
    "HNE", "HNE", "HE1HT", "HE1HT", "HE2HT", "HE2HT",
    "HEC", "HEC", "HER", "HE1ST", "HE1ST", "HE2ST", "HE2ST", "HSF6",
    "N° du titre", "Date Validation", "Date Expiration",
)
NB_COLONNES_IMPORT = len(COLONNES_IMPORT)

COL_MATRICULE = 0
COL_NOM = 1
COL_PRENOM = 2
COL_DIVISION = 4
COL_SERVICE = 5
COL_SECTION = 6
COL_EQUIPE = 7
COL_NUMERO = 23
COL_DATE_VALIDATION = 24
COL_DATE_EXPIRATION = 25

# Colonne indicatrice -> code porte par la colonne (cellule non vide = code present).
# HSF6 n'appartient a aucun vocabulaire : la colonne est ignoree.
COLONNES_CODES: dict[int, str] = {
    9: "H0V", 10: "B0V",
    11: "H1V", 12: "B1V",
    13: "H2V", 14: "B2V",
    15: "HC", 16: "BC",
    17: "BR",
    18: "H1N", 19: "H1T",
    20: "H2N", 21: "H2T",
}

EN_TETE_MARQUEUR = "MATRICULE"

SUPPORTED_EXTENSIONS = {
    ".tsv": "tsv",
    ".txt": "tsv",
    ".xlsx": "excel",
}


def famille_du_code(code: str) -> Famille | None:
    """Retourne la famille dont le vocabulaire contient le code."""
    for famille, vocabulaire in VOCABULAIRES.items():
        if code in vocabulaire:
            return famille
    return None
