"""Utilitaires de parsing et manipulation de dates."""

from datetime import date, datetime

from habilitations_tracker.core.exceptions import MalformedDateError

# Format des fichiers d'import : jour et mois sans zero initial (1/7/2022)
FORMATS_IMPORT = ["%d/%m/%Y"]

# Formats acceptes a la frontiere du renouvellement
FORMATS_RENOUVELLEMENT = ["%d/%m/%Y", "%Y-%m-%d"]


def parser_date(valeur, formats: list[str] | None = None) -> date:
    """Convertit une valeur textuelle (ou une cellule Excel) en date.

    Leve MalformedDateError si aucun format ne correspond.
    """
    if isinstance(valeur, datetime):
        return valeur.date()
    if isinstance(valeur, date):
        return valeur

    texte = "" if valeur is None else str(valeur).strip()
    if not texte:
        raise MalformedDateError("Date manquante.")

    for fmt in formats or FORMATS_IMPORT:
        try:
            return datetime.strptime(texte, fmt).date()
        except ValueError:
            continue
    raise MalformedDateError(f"Date illisible : '{texte}'.")


def parser_date_renouvellement(valeur) -> date:
    """Date d'une demande de renouvellement ("D/M/YYYY" ou "YYYY-MM-DD")."""
    return parser_date(valeur, FORMATS_RENOUVELLEMENT)


def jours_restants(date_expiration: date, au: date) -> int:
    """Nombre de jours calendaires entre ``au`` et l'expiration (negatif si depassee)."""
    return (date_expiration - au).days
