"""Exceptions personnalisees pour le suivi des habilitations.

Chaque exception porte un ``kind`` stable, repris tel quel dans les
resultats structures renvoyes aux appelants (import, API, CLI).
"""


class HabilitationsError(Exception):
    """Exception de base."""
    kind = "Error"


class NotFoundError(HabilitationsError):
    """Identifiant ou matricule introuvable."""
    kind = "NotFound"


class InvalidCodeError(HabilitationsError):
    """Code hors du vocabulaire de la famille."""
    kind = "InvalidCode"


class EmptyCodeSetError(HabilitationsError):
    """Ensemble de codes vide."""
    kind = "EmptyCodeSet"


class InvalidDateRangeError(HabilitationsError):
    """Date d'expiration anterieure ou egale a la date de validation."""
    kind = "InvalidDateRange"


class MissingExpirationError(InvalidDateRangeError):
    """Aucune date d'expiration fournie pour un renouvellement."""
    kind = "MissingExpiration"


class ParseError(HabilitationsError):
    """Fichier d'import illisible."""
    kind = "ParseError"


class UnsupportedFormatError(ParseError):
    """Format de fichier non supporte."""
    kind = "UnsupportedFormat"


class MalformedDateError(HabilitationsError):
    """Date illisible."""
    kind = "MalformedDate"


class MalformedRowError(HabilitationsError):
    """Ligne d'import incomplete ou mal decoupee."""
    kind = "MalformedRow"


class MissingFieldError(HabilitationsError):
    """Champ obligatoire absent (matricule, nom...)."""
    kind = "MissingField"


class HierarchyConflictError(HabilitationsError):
    """Creation concurrente d'un noeud de l'organigramme non resolue."""
    kind = "HierarchyConflict"


class InvalidPathError(HabilitationsError):
    """Chemin Division > Service > Section > Equipe incoherent ou incomplet."""
    kind = "InvalidPath"


class UnauthorizedError(HabilitationsError):
    """Appel refuse par le collaborateur d'authentification."""
    kind = "Unauthorized"


class StorageError(HabilitationsError):
    """Base de donnees indisponible : le lot d'import est interrompu."""
    kind = "Storage"

    def __init__(self, message: str, resultat_partiel=None):
        super().__init__(message)
        self.resultat_partiel = resultat_partiel
