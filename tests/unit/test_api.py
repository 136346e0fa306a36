"""Tests de la frontiere HTTP (FastAPI)."""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from fastapi.testclient import TestClient

from api.index import creer_app
from habilitations_tracker.config.settings import AppConfig
from habilitations_tracker.security.autorisation import VerificateurJetonStatique

FIXTURES = Path(__file__).parent.parent / "fixtures"
JETON = {"Authorization": "Bearer jeton-de-test"}


def _client(tmp_path) -> TestClient:
    config = AppConfig(data_dir=tmp_path, db_path=tmp_path / "api.db")
    return TestClient(creer_app(config, VerificateurJetonStatique(["jeton-de-test"])))


def _importer(client: TestClient) -> dict:
    reponse = client.post(
        "/api/import-employees",
        json={"tsvData": (FIXTURES / "import_habilitations.tsv").read_text(encoding="utf-8")},
        headers=JETON,
    )
    assert reponse.status_code == 200
    return reponse.json()


class TestAuthentification:
    """Tests du controle d'acces."""

    def test_ping_public(self, tmp_path):
        assert _client(tmp_path).get("/api/ping").json() == {"message": "ping"}

    def test_sans_jeton(self, tmp_path):
        reponse = _client(tmp_path).get("/api/employees")
        assert reponse.status_code == 401
        assert reponse.json()["error"] == "Unauthorized"

    def test_jeton_invalide(self, tmp_path):
        reponse = _client(tmp_path).get("/api/divisions", headers={"Authorization": "Bearer faux"})
        assert reponse.status_code == 401

    def test_jeton_cookie(self, tmp_path):
        client = _client(tmp_path)
        client.cookies.set("ht_token", "jeton-de-test")
        assert client.get("/api/divisions").status_code == 200


class TestEmployes:
    """Tests des routes employes et organigramme."""

    def test_import_puis_liste(self, tmp_path):
        client = _client(tmp_path)
        bilan = _importer(client)
        assert (bilan["created"], bilan["failed"]) == (3, 0)
        assert bilan["habilitations"]["created"] == 3

        corps = client.get("/api/employees", params={"au": "2025-09-15"}, headers=JETON).json()
        abad = corps["employes"][0]
        assert abad["matricule"] == "82307"
        assert abad["service"] == "Service Maintenance Casa"
        assert abad["statut"] == "expiring-soon"
        assert corps["resume"]["sans_habilitation"] == 1

    def test_resume_suit_les_filtres(self, tmp_path):
        client = _client(tmp_path)
        _importer(client)
        corps = client.get(
            "/api/employees", params={"au": "2025-09-15", "recherche": "abad"}, headers=JETON,
        ).json()
        assert [e["matricule"] for e in corps["employes"]] == ["82307"]
        assert sum(corps["resume"].values()) == 1
        assert corps["resume"]["expiring-soon"] == 1
        assert corps["resume"]["sans_habilitation"] == 0

    def test_import_vide(self, tmp_path):
        reponse = _client(tmp_path).post("/api/import-employees", json={"tsvData": ""}, headers=JETON)
        assert reponse.status_code == 400
        assert reponse.json()["error"] == "MissingField"

    def test_import_fichier(self, tmp_path):
        client = _client(tmp_path)
        with open(FIXTURES / "import_habilitations.tsv", "rb") as f:
            reponse = client.post(
                "/api/import-employees/fichier",
                files={"fichier": ("habilitations_mars.tsv", f, "text/tab-separated-values")},
                headers=JETON,
            )
        assert reponse.status_code == 200
        assert reponse.json()["created"] == 3

        entree = client.app.state.composants.audit.lire_journal()[-1]
        assert entree["operation"] == "import_employes"
        assert entree["fichier"] == "habilitations_mars.tsv"

    def test_import_fichier_format(self, tmp_path):
        reponse = _client(tmp_path).post(
            "/api/import-employees/fichier",
            files={"fichier": ("import.pdf", b"%PDF", "application/pdf")},
            headers=JETON,
        )
        assert reponse.status_code == 400
        assert reponse.json()["error"] == "UnsupportedFormat"

    def test_organigramme(self, tmp_path):
        client = _client(tmp_path)
        assert client.post("/api/seed", headers=JETON).json()["chemins"] > 0
        divisions = client.get("/api/divisions", headers=JETON).json()
        casa = next(d for d in divisions if d["name"] == "Division Exploitation Casa")
        services = client.get(f"/api/divisions/{casa['id']}/services", headers=JETON).json()
        maintenance = next(s for s in services if s["name"] == "Service Maintenance Casa")
        sections = client.get(f"/api/services/{maintenance['id']}/sections", headers=JETON).json()
        ligne = next(s for s in sections if s["name"] == "Section Ligne Casa")
        equipes = client.get(f"/api/sections/{ligne['id']}/equipes", headers=JETON).json()
        assert [e["name"] for e in equipes] == ["Equipe Ligne", "Equipe TST Ligne Casa"]

    def test_creer_modifier_supprimer(self, tmp_path):
        client = _client(tmp_path)
        client.post("/api/seed", headers=JETON)
        casa = client.get("/api/divisions", headers=JETON).json()[1]
        service = client.get(f"/api/divisions/{casa['id']}/services", headers=JETON).json()[0]
        section = client.get(f"/api/services/{service['id']}/sections", headers=JETON).json()[0]
        corps = {
            "matricule": "70001", "prenom": "Youssef", "nom": "Alaoui",
            "division_id": casa["id"], "service_id": service["id"], "section_id": section["id"],
        }

        cree = client.post("/api/employees", json=corps, headers=JETON)
        assert cree.status_code == 201
        employe_id = cree.json()["id"]
        assert cree.json()["issue"] == "Created"

        modifie = client.put(f"/api/employees/{employe_id}", json={**corps, "nom": "ALAOUI"}, headers=JETON)
        assert modifie.json()["nom"] == "ALAOUI"

        supprime = client.delete(f"/api/employees/{employe_id}", headers=JETON)
        assert supprime.json() == {"ok": True, "habilitations_supprimees": 0}
        introuvable = client.get(f"/api/employees/{employe_id}", headers=JETON)
        assert introuvable.status_code == 404
        assert introuvable.json()["error"] == "NotFound"

    def test_chemin_incoherent(self, tmp_path):
        client = _client(tmp_path)
        reponse = client.post("/api/employees", json={
            "matricule": "1", "nom": "X", "division_id": 1, "service_id": 1, "section_id": 1,
        }, headers=JETON)
        assert reponse.status_code == 422
        assert reponse.json()["error"] == "InvalidPath"


class TestHabilitations:
    """Tests des routes habilitations."""

    def _abad(self, client: TestClient) -> dict:
        _importer(client)
        employes = client.get("/api/employees", params={"recherche": "abad"}, headers=JETON).json()
        return employes["employes"][0]

    def test_creation_code_invalide(self, tmp_path):
        client = _client(tmp_path)
        abad = self._abad(client)
        reponse = client.post("/api/habilitations", json={
            "employe_id": abad["id"], "famille": "HT", "codes": ["H1N"],
            "date_validation": "1/10/2022", "date_expiration": "1/10/2025",
        }, headers=JETON)
        assert reponse.status_code == 422
        assert reponse.json()["error"] == "InvalidCode"

    def test_creation_date_illisible(self, tmp_path):
        client = _client(tmp_path)
        abad = self._abad(client)
        reponse = client.post("/api/habilitations", json={
            "employe_id": abad["id"], "famille": "HT", "codes": ["H1V"],
            "date_validation": "hier", "date_expiration": "1/10/2025",
        }, headers=JETON)
        assert reponse.json()["error"] == "MalformedDate"

    def test_renouvellement(self, tmp_path):
        client = _client(tmp_path)
        abad = self._abad(client)
        ht = next(h for h in abad["habilitations"] if h["famille"] == "HT")
        reponse = client.put(f"/api/habilitations/{ht['id']}", json={
            "codes": ["H1V", "B1V"], "date_validation": "2025-10-02", "date_expiration": "2/10/2028",
        }, headers=JETON)
        assert reponse.status_code == 200
        assert reponse.json()["ok"]["codes"] == ["H1V", "B1V"]
        assert reponse.json()["ok"]["id"] == ht["id"]

    def test_renouvellement_sans_expiration(self, tmp_path):
        client = _client(tmp_path)
        abad = self._abad(client)
        ht = next(h for h in abad["habilitations"] if h["famille"] == "HT")
        reponse = client.put(f"/api/habilitations/{ht['id']}", json={
            "codes": ["H1V"], "date_validation": "2025-10-02",
        }, headers=JETON)
        assert reponse.status_code == 422
        assert reponse.json()["error"] == "MissingExpiration"

    def test_expirees_et_suppression(self, tmp_path):
        client = _client(tmp_path)
        abad = self._abad(client)
        corps = client.get("/api/habilitations/expirees", params={"au": "2025-11-01"}, headers=JETON).json()
        assert {e["matricule"] for e in corps["expirees"]} == {"82307", "85024"}

        ht = next(h for h in abad["habilitations"] if h["famille"] == "HT")
        assert client.delete(f"/api/habilitations/{ht['id']}", headers=JETON).json() == {"ok": True}
        assert client.delete(f"/api/habilitations/{ht['id']}", headers=JETON).status_code == 404
