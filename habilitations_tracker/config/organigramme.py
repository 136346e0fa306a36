"""Organigramme de reference des divisions d'exploitation.

Division -> Service -> Section -> liste des equipes. Charge par la
commande ``seed`` ; les noeuds deja presents sont reutilises.
"""

ORGANIGRAMME: dict[str, dict[str, dict[str, list[str]]]] = {
    "Division Exploitation Casa": {
        "Service Maintenance Casa": {
            "Section Ligne Casa": ["Equipe Ligne", "Equipe TST Ligne Casa"],
            "Section Poste Casa": ["Equipe Poste Casa", "Equipe Poste Settat"],
            "Section Contrôle et Commande Casa": ["Equipe Contrôle et Commande Casa"],
            "Section Télécom Casa": ["Equipe Télécom Casa"],
        },
        "Service Conduite et Exploitation Casa": {
            "Groupement Casa": ["Equipe Conduite Casa", "Equipe TST Poste Casa"],
            "Groupement Settat": ["Equipe Conduite Settat"],
        },
    },
    "Division Exploitation El Jadida": {
        "Service Maintenance El Jadida": {
            "Section Ligne El Jadida": [
                "Equipe Ligne El Jadida", "Equipe Ligne Safi", "Equipe TST Ligne El Jadida",
            ],
            "Section Poste El Jadida": ["Equipe Poste El Jadida", "Equipe Poste Safi"],
            "Section Contrôle et Commande El Jadida": ["Equipe Contrôle et Commande El Jadida"],
            "Section Télécom El Jadida": ["Equipe Télécom Afourer"],
        },
        "Service Conduite et Exploitation El Jadida": {
            "Groupement El Jadida": [
                "Equipe Conduite Jorf Lasfer", "Equipe Conduite Ghanem",
                "Equipe Conduite Sidi Bennour",
            ],
            "Groupement Safi": [
                "Equipe Conduite et Exploitation Safi", "Equipe Conduite Chemaia",
                "Equipe Conduite Bouguedra",
            ],
            "Section Programmation": [],
        },
    },
    "Division Exploitation AFOURER": {
        "Service Maintenance Afourer": {
            "Section Ligne Afourer": [
                "Equipe Lignes Afourer", "Equipe Lignes Tadla", "Equipe Lignes Kalaa",
                "Equipe TST Lignes Afourer",
            ],
            "Section Poste Afourer": ["Equipe Postes Afourer"],
            "Section Contrôle et Commande Afourer": ["Equipe Contrôle et Commande Afourer"],
            "Section Télécom Afourer": ["Equipe Télécom Afourer"],
        },
        "Service Conduite et Exploitation Afourer": {
            "Groupement Afourer": [
                "Equipe Conduite Afourer", "Equipe Conduite Khouribga",
                "Equipe Conduite Bengurir", "Equipe TST Postes Afourer",
            ],
            "Groupement El Kalaa": ["Equipe Conduite Kalaa"],
        },
    },
}


def chemins_organigramme(
    organigramme: dict[str, dict[str, dict[str, list[str]]]] = ORGANIGRAMME,
) -> list[tuple[str, str, str, str]]:
    """Aplatit l'organigramme en chemins (division, service, section, equipe).

    Une section sans equipe donne un chemin dont l'equipe est vide.
    """
    chemins = []
    for division, services in organigramme.items():
        for service, sections in services.items():
            for section, equipes in sections.items():
                for equipe in equipes or [""]:
                    chemins.append((division, service, section, equipe))
    return chemins
