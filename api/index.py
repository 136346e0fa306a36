"""Suivi des habilitations - point d'entree web.

Employes, organigramme, habilitations, renouvellements et import en masse.
Les erreurs metier sont renvoyees sous la forme ``{"error": kind, "detail": message}``.
"""

import tempfile
from datetime import date
from pathlib import Path
from typing import Optional

from fastapi import Depends, FastAPI, File, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from habilitations_tracker.config.constants import SUPPORTED_EXTENSIONS, Niveau
from habilitations_tracker.config.organigramme import chemins_organigramme
from habilitations_tracker.config.settings import AppConfig
from habilitations_tracker.core.application import Composants, assembler
from habilitations_tracker.core.exceptions import (
    HabilitationsError, MissingFieldError, StorageError, UnsupportedFormatError,
)
from habilitations_tracker.core.resultats import Resultat, executer
from habilitations_tracker.habilitations.consultation import LigneTableau
from habilitations_tracker.habilitations.renouvellement import DemandeRenouvellement
from habilitations_tracker.models.entites import (
    CheminHierarchique, FicheEmploye, Habilitation, HabilitationARenouveler, NoeudHierarchique,
)
from habilitations_tracker.security.autorisation import (
    Principal, Verificateur, VerificateurJetonStatique, exiger_principal,
    extraire_jeton_bearer,
)
from habilitations_tracker.utils.date_utils import parser_date_renouvellement

STATUTS_HTTP = {
    "NotFound": 404,
    "Unauthorized": 401,
    "HierarchyConflict": 409,
    "Storage": 503,
    "MissingField": 400,
    "MalformedRow": 400,
    "ParseError": 400,
    "UnsupportedFormat": 400,
}


# ==============================
# MODELES DE REQUETE
# ==============================

class EmployeRequete(BaseModel):
    matricule: str = ""
    prenom: str = ""
    nom: str
    division_id: int
    service_id: int
    section_id: int
    equipe_id: Optional[int] = None

    def chemin(self) -> CheminHierarchique:
        return CheminHierarchique(self.division_id, self.service_id, self.section_id, self.equipe_id)


class HabilitationRequete(BaseModel):
    employe_id: int
    famille: str
    codes: list[str]
    date_validation: str
    date_expiration: str
    numero: Optional[str] = None
    document_ref: Optional[str] = None


class RenouvellementRequete(BaseModel):
    codes: list[str]
    date_validation: str
    date_expiration: Optional[str] = None
    numero: Optional[str] = None


class ImportRequete(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tsv_data: str = Field(default="", alias="tsvData")


# ==============================
# SERIALISATION
# ==============================

def _habilitation(h: Habilitation) -> dict:
    return {
        "id": h.id,
        "employe_id": h.employe_id,
        "famille": h.famille.value,
        "codes": h.codes_ordonnes(),
        "numero": h.numero,
        "date_validation": h.date_validation.isoformat(),
        "date_expiration": h.date_expiration.isoformat(),
        "document_ref": h.document_ref,
    }


def _fiche(f: FicheEmploye) -> dict:
    e = f.employe
    return {
        "id": e.id,
        "matricule": e.matricule,
        "prenom": e.prenom,
        "nom": e.nom,
        "division_id": e.division_id,
        "service_id": e.service_id,
        "section_id": e.section_id,
        "equipe_id": e.equipe_id,
        "division": f.noms.division,
        "service": f.noms.service,
        "section": f.noms.section,
        "equipe": f.noms.equipe,
        "habilitations": [_habilitation(h) for h in f.habilitations],
    }


def _ligne_tableau(ligne: LigneTableau) -> dict:
    return {
        **_fiche(ligne.fiche),
        "statut": ligne.statut.value if ligne.statut else None,
        "habilitation_en_tete": _habilitation(ligne.en_tete) if ligne.en_tete else None,
    }


def _noeud(n: NoeudHierarchique) -> dict:
    return {"id": n.id, "name": n.nom}


def _a_renouveler(entree: HabilitationARenouveler) -> dict:
    return {
        **_habilitation(entree.habilitation),
        "matricule": entree.employe.matricule,
        "nom": entree.employe.nom,
        "prenom": entree.employe.prenom,
    }


def _erreur(exc: HabilitationsError) -> JSONResponse:
    corps = Resultat.depuis_exception(exc).to_dict()
    if isinstance(exc, StorageError) and exc.resultat_partiel is not None:
        corps["partial"] = exc.resultat_partiel.to_dict()
    return JSONResponse(corps, status_code=STATUTS_HTTP.get(exc.kind, 422))


def _reponse(resultat: Resultat, serialiser, status_code: int = 200) -> JSONResponse:
    """``{"ok": ...}`` ou ``{"error": kind, "detail": ...}`` avec le statut HTTP associe."""
    if not resultat.succes:
        status_code = STATUTS_HTTP.get(resultat.erreur, 422)
    return JSONResponse(resultat.to_dict(serialiser), status_code=status_code)


# ==============================
# DEPENDANCES
# ==============================

def get_composants(request: Request) -> Composants:
    etat = request.app.state
    if etat.composants is None:
        etat.composants = assembler(etat.config)
    return etat.composants


def get_principal(request: Request, composants: Composants = Depends(get_composants)) -> Principal:
    """Extrait et verifie le jeton Bearer (ou le cookie ``ht_token``)."""
    verificateur: Optional[Verificateur] = request.app.state.verificateur
    if verificateur is None:
        verificateur = VerificateurJetonStatique(composants.config.api.jetons)
    jeton = extraire_jeton_bearer(request.headers.get("Authorization")) or request.cookies.get("ht_token")
    return exiger_principal(jeton, verificateur)


def _date_reference(au: Optional[str]) -> date:
    return parser_date_renouvellement(au) if au else date.today()


# ==============================
# APPLICATION
# ==============================

def creer_app(
    config: Optional[AppConfig] = None,
    verificateur: Optional[Verificateur] = None,
) -> FastAPI:
    """Construit l'application ; la base est ouverte a la premiere requete."""
    app = FastAPI(
        title="Habilitations Tracker",
        description="Suivi des habilitations electriques du personnel d'exploitation",
        version="1.0.0",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.config = config
    app.state.verificateur = verificateur
    app.state.composants = None

    @app.exception_handler(HabilitationsError)
    async def erreur_metier(request: Request, exc: HabilitationsError):
        return _erreur(exc)

    # ---------- Sante ----------

    @app.get("/api/ping")
    async def ping():
        return {"message": "ping"}

    # ---------- Organigramme ----------

    @app.post("/api/seed")
    def seed(
        principal: Principal = Depends(get_principal),
        c: Composants = Depends(get_composants),
    ):
        nb = c.hierarchie.charger_organigramme(chemins_organigramme())
        return {"message": "Organigramme charge", "chemins": nb}

    @app.get("/api/divisions")
    def divisions(
        principal: Principal = Depends(get_principal),
        c: Composants = Depends(get_composants),
    ):
        return [_noeud(n) for n in c.hierarchie.lister_divisions()]

    @app.get("/api/divisions/{division_id}/services")
    def services(
        division_id: int,
        principal: Principal = Depends(get_principal),
        c: Composants = Depends(get_composants),
    ):
        return [_noeud(n) for n in c.hierarchie.lister_enfants(Niveau.SERVICE, division_id)]

    @app.get("/api/services/{service_id}/sections")
    def sections(
        service_id: int,
        principal: Principal = Depends(get_principal),
        c: Composants = Depends(get_composants),
    ):
        return [_noeud(n) for n in c.hierarchie.lister_enfants(Niveau.SECTION, service_id)]

    @app.get("/api/sections/{section_id}/equipes")
    def equipes(
        section_id: int,
        principal: Principal = Depends(get_principal),
        c: Composants = Depends(get_composants),
    ):
        return [_noeud(n) for n in c.hierarchie.lister_enfants(Niveau.EQUIPE, section_id)]

    # ---------- Employes ----------

    @app.get("/api/employees")
    def lister_employes(
        recherche: Optional[str] = Query(None),
        division_id: Optional[int] = Query(None),
        tri: str = Query("matricule", pattern="^(matricule|nom)$"),
        au: Optional[str] = Query(None),
        principal: Principal = Depends(get_principal),
        c: Composants = Depends(get_composants),
    ):
        reference = _date_reference(au)
        return {
            "date": reference.isoformat(),
            "employes": [
                _ligne_tableau(l)
                for l in c.consultation.tableau(reference, recherche, division_id, tri)
            ],
            "resume": c.consultation.resume(reference, recherche, division_id),
        }

    @app.post("/api/employees", status_code=201)
    def creer_employe(
        corps: EmployeRequete,
        principal: Principal = Depends(get_principal),
        c: Composants = Depends(get_composants),
    ):
        if not corps.matricule.strip():
            raise MissingFieldError("Le matricule est obligatoire.")
        employe, cree = c.registre.upsert(corps.matricule, corps.prenom, corps.nom, corps.chemin())
        fiche = c.consultation.fiche(employe.id)
        return {**_fiche(fiche), "issue": "Created" if cree else "Updated"}

    @app.get("/api/employees/{employe_id}")
    def lire_employe(
        employe_id: int,
        principal: Principal = Depends(get_principal),
        c: Composants = Depends(get_composants),
    ):
        return _fiche(c.consultation.fiche(employe_id))

    @app.put("/api/employees/{employe_id}")
    def modifier_employe(
        employe_id: int,
        corps: EmployeRequete,
        principal: Principal = Depends(get_principal),
        c: Composants = Depends(get_composants),
    ):
        c.registre.modifier(employe_id, corps.prenom, corps.nom, corps.chemin())
        return _fiche(c.consultation.fiche(employe_id))

    @app.delete("/api/employees/{employe_id}")
    def supprimer_employe(
        employe_id: int,
        principal: Principal = Depends(get_principal),
        c: Composants = Depends(get_composants),
    ):
        nb = c.registre.supprimer(employe_id)
        c.audit.log_suppression(principal.identifiant, "employe", employe_id, habilitations=nb)
        return {"ok": True, "habilitations_supprimees": nb}

    # ---------- Habilitations ----------

    @app.post("/api/habilitations", status_code=201)
    def creer_habilitation(
        corps: HabilitationRequete,
        principal: Principal = Depends(get_principal),
        c: Composants = Depends(get_composants),
    ):
        resultat = executer(
            c.ledger.create,
            corps.employe_id,
            corps.famille,
            corps.codes,
            parser_date_renouvellement(corps.date_validation),
            parser_date_renouvellement(corps.date_expiration),
            corps.numero,
            corps.document_ref,
        )
        return _reponse(resultat, _habilitation, status_code=201)

    @app.put("/api/habilitations/{habilitation_id}")
    def renouveler_habilitation(
        habilitation_id: int,
        corps: RenouvellementRequete,
        principal: Principal = Depends(get_principal),
        c: Composants = Depends(get_composants),
    ):
        demande = DemandeRenouvellement(
            habilitation_id=habilitation_id,
            codes=corps.codes,
            date_validation=corps.date_validation,
            date_expiration=corps.date_expiration,
            numero=corps.numero,
        )
        resultat = executer(c.renouvellement.renouveler, demande, principal.identifiant)
        return _reponse(resultat, _habilitation)

    @app.delete("/api/habilitations/{habilitation_id}")
    def supprimer_habilitation(
        habilitation_id: int,
        principal: Principal = Depends(get_principal),
        c: Composants = Depends(get_composants),
    ):
        c.ledger.supprimer(habilitation_id)
        c.audit.log_suppression(principal.identifiant, "habilitation", habilitation_id)
        return {"ok": True}

    @app.get("/api/habilitations/expirees")
    def habilitations_expirees(
        au: Optional[str] = Query(None),
        principal: Principal = Depends(get_principal),
        c: Composants = Depends(get_composants),
    ):
        reference = _date_reference(au)
        return {
            "date": reference.isoformat(),
            "expirees": [_a_renouveler(e) for e in c.consultation.a_renouveler(reference)],
            "expirant_bientot": [_a_renouveler(e) for e in c.consultation.expirant_bientot(reference)],
        }

    # ---------- Import ----------

    @app.post("/api/import-employees")
    def importer_employes(
        corps: ImportRequete,
        principal: Principal = Depends(get_principal),
        c: Composants = Depends(get_composants),
    ):
        if not corps.tsv_data.strip():
            raise MissingFieldError("Donnees TSV requises.")
        resultat = c.reconciler.importer_texte(corps.tsv_data, principal.identifiant)
        return {"message": "Import termine", **resultat.to_dict()}

    @app.post("/api/import-employees/fichier")
    async def importer_fichier(
        fichier: UploadFile = File(...),
        principal: Principal = Depends(get_principal),
        c: Composants = Depends(get_composants),
    ):
        ext = Path(fichier.filename or "").suffix.lower()
        if ext not in SUPPORTED_EXTENSIONS:
            raise UnsupportedFormatError(
                f"Format '{ext}' non supporte. "
                f"Formats acceptes : {', '.join(SUPPORTED_EXTENSIONS.keys())}"
            )
        contenu = await fichier.read()
        with tempfile.TemporaryDirectory() as tmp:
            chemin = Path(tmp) / f"import{ext}"
            chemin.write_bytes(contenu)
            resultat = c.reconciler.importer_fichier(
                chemin, principal.identifiant, nom_fichier=fichier.filename,
            )
        return {"message": "Import termine", "fichier": fichier.filename, **resultat.to_dict()}

    return app


app = creer_app()
