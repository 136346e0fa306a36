"""Point d'entree CLI du suivi des habilitations.

Usage :
    habilitations-tracker init
    habilitations-tracker seed
    habilitations-tracker import employes.tsv
    habilitations-tracker liste [--recherche TEXTE] [--division ID] [--tri nom]
    habilitations-tracker expirees [--date 2025-10-01]
    habilitations-tracker renouveler 12 --codes H1V B1V --date-validation 1/10/2025 \\
        --date-expiration 1/10/2028
"""

import argparse
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Optional

from habilitations_tracker.config.constants import SUPPORTED_EXTENSIONS
from habilitations_tracker.config.organigramme import chemins_organigramme
from habilitations_tracker.config.settings import AppConfig
from habilitations_tracker.core.application import Composants, assembler
from habilitations_tracker.core.exceptions import HabilitationsError, StorageError
from habilitations_tracker.employes.employee_registry import TRIS
from habilitations_tracker.habilitations.renouvellement import DemandeRenouvellement
from habilitations_tracker.utils.date_utils import parser_date_renouvellement

ACTEUR_CLI = "cli"


def configurer_logging(verbose: bool = False) -> None:
    """Configure le logging de l'application."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)-7s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def creer_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="habilitations-tracker",
        description="Suivi des habilitations electriques du personnel d'exploitation.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"Formats d'import : {', '.join(SUPPORTED_EXTENSIONS.keys())}",
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Chemin de la base SQLite (defaut: $HABILITATIONS_DB_PATH ou data/habilitations.db)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Mode verbeux (debug)",
    )
    sub = parser.add_subparsers(dest="commande", required=True)

    sub.add_parser("init", help="Cree le schema de la base")
    sub.add_parser("seed", help="Charge l'organigramme de reference")

    p_import = sub.add_parser("import", help="Importe un tableau d'employes")
    p_import.add_argument("fichier", type=Path, help="Fichier .tsv, .txt ou .xlsx")

    p_liste = sub.add_parser("liste", help="Liste les employes et leur statut")
    p_liste.add_argument("--recherche", "-r", default=None)
    p_liste.add_argument("--division", type=int, default=None)
    p_liste.add_argument("--tri", choices=TRIS, default="matricule")
    p_liste.add_argument("--date", default=None, help="Date de reference (defaut: aujourd'hui)")

    p_exp = sub.add_parser("expirees", help="Liste de travail des habilitations expirees")
    p_exp.add_argument("--date", default=None, help="Date de reference (defaut: aujourd'hui)")

    p_ren = sub.add_parser("renouveler", help="Renouvelle une habilitation")
    p_ren.add_argument("habilitation_id", type=int)
    p_ren.add_argument("--codes", nargs="+", required=True)
    p_ren.add_argument("--date-validation", required=True)
    p_ren.add_argument("--date-expiration", default=None)
    p_ren.add_argument("--numero", default=None)
    return parser


def _date_reference(valeur: Optional[str]) -> date:
    return parser_date_renouvellement(valeur) if valeur else date.today()


def _afficher_bilan(titre: str, lignes: list[str]) -> None:
    print(f"\n{'='*60}")
    print(f"  {titre}")
    for ligne in lignes:
        print(f"  {ligne}")
    print(f"{'='*60}\n")


def _executer(args: argparse.Namespace, composants: Composants) -> int:
    if args.commande == "init":
        _afficher_bilan("BASE INITIALISEE", [str(composants.config.db_path)])
        return 0

    if args.commande == "seed":
        nb = composants.hierarchie.charger_organigramme(chemins_organigramme())
        _afficher_bilan("ORGANIGRAMME CHARGE", [f"Chemins : {nb}"])
        return 0

    if args.commande == "import":
        resultat = composants.reconciler.importer_fichier(args.fichier, ACTEUR_CLI)
        lignes = [
            f"Crees : {resultat.nb_crees}",
            f"Mis a jour : {resultat.nb_mis_a_jour}",
            f"Rejetes : {resultat.nb_echecs}",
        ]
        lignes += [f"  ligne {index} : {raison}" for index, raison in resultat.echecs]
        _afficher_bilan("IMPORT TERMINE", lignes)
        return 0 if resultat.nb_echecs == 0 else 1

    if args.commande == "liste":
        au = _date_reference(args.date)
        for ligne in composants.consultation.tableau(au, args.recherche, args.division, args.tri):
            employe = ligne.fiche.employe
            statut = ligne.statut.value if ligne.statut else "-"
            expiration = ligne.en_tete.date_expiration.isoformat() if ligne.en_tete else "-"
            print(
                f"{employe.matricule:<10} {employe.nom_complet:<30} "
                f"{ligne.fiche.noms.section:<35} {statut:<14} {expiration}"
            )
        return 0

    if args.commande == "expirees":
        au = _date_reference(args.date)
        a_renouveler = composants.consultation.a_renouveler(au)
        for entree in a_renouveler:
            hab = entree.habilitation
            print(
                f"#{hab.id:<5} {entree.employe.matricule:<10} "
                f"{entree.employe.nom} {entree.employe.prenom:<20} "
                f"{hab.famille.value} {','.join(hab.codes_ordonnes()):<20} "
                f"{hab.date_expiration.isoformat()}"
            )
        _afficher_bilan("HABILITATIONS EXPIREES", [f"Au {au.isoformat()} : {len(a_renouveler)}"])
        return 0

    if args.commande == "renouveler":
        hab = composants.renouvellement.renouveler(
            DemandeRenouvellement(
                habilitation_id=args.habilitation_id,
                codes=args.codes,
                date_validation=args.date_validation,
                date_expiration=args.date_expiration,
                numero=args.numero,
            ),
            ACTEUR_CLI,
        )
        _afficher_bilan("HABILITATION RENOUVELEE", [
            f"#{hab.id} {hab.famille.value} {','.join(hab.codes_ordonnes())}",
            f"Valide du {hab.date_validation.isoformat()} au {hab.date_expiration.isoformat()}",
        ])
        return 0

    raise ValueError(f"Commande inconnue : {args.commande}")


def main(argv: Optional[list[str]] = None) -> int:
    """Point d'entree principal."""
    parser = creer_argument_parser()
    args = parser.parse_args(argv)

    configurer_logging(args.verbose)
    logger = logging.getLogger("habilitations_tracker")

    config = AppConfig(db_path=args.db) if args.db else AppConfig()

    try:
        composants = assembler(config)
        return _executer(args, composants)
    except StorageError as e:
        logger.error("Base indisponible : %s", e)
        return 2
    except HabilitationsError as e:
        logger.error("%s : %s", e.kind, e)
        return 1
    except Exception as e:
        logger.exception("Erreur inattendue : %s", e)
        return 2


if __name__ == "__main__":
    sys.exit(main())
