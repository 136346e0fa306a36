"""Tests du registre des employes."""

import sys
from datetime import date
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

import pytest

from habilitations_tracker.core.exceptions import (
    InvalidPathError, MissingFieldError, NotFoundError,
)
from habilitations_tracker.database.db_manager import Database
from habilitations_tracker.employes.employee_registry import EmployeeRegistry
from habilitations_tracker.habilitations.ledger import HabilitationLedger
from habilitations_tracker.hierarchie.hierarchy_store import HierarchyStore
from habilitations_tracker.models.entites import CheminHierarchique


def _pile(tmp_path):
    db = Database(tmp_path / "e.db")
    hierarchie = HierarchyStore(db)
    return db, hierarchie, EmployeeRegistry(db, hierarchie), HabilitationLedger(db)


def _casa(hierarchie, equipe="Equipe Ligne"):
    return hierarchie.resolve_path(
        "Division Exploitation Casa", "Service Maintenance Casa", "Section Ligne Casa", equipe,
    )


class TestUpsert:
    """Tests de creation et mise a jour par matricule."""

    def test_creation(self, tmp_path):
        _, hierarchie, registre, _ = _pile(tmp_path)
        employe, cree = registre.upsert("82307", "HAMZA", "ABAD", _casa(hierarchie))
        assert cree is True
        assert employe.matricule == "82307"
        assert employe.nom_complet == "ABAD HAMZA"

    def test_mise_a_jour_meme_matricule(self, tmp_path):
        db, hierarchie, registre, _ = _pile(tmp_path)
        premier, _ = registre.upsert("82307", "HAMZA", "ABAD", _casa(hierarchie))
        mutation = hierarchie.resolve_path(
            "Division Exploitation AFOURER", "Service Maintenance Afourer", "Section Ligne Afourer",
        )
        second, cree = registre.upsert(" 82307 ", "Hamza", "ABAD", mutation)
        assert cree is False
        assert second.id == premier.id
        assert second.prenom == "Hamza"
        assert second.chemin == mutation
        assert db.execute("SELECT COUNT(*) AS n FROM employes")[0]["n"] == 1

    def test_matricule_vide(self, tmp_path):
        _, hierarchie, registre, _ = _pile(tmp_path)
        with pytest.raises(MissingFieldError):
            registre.upsert("   ", "HAMZA", "ABAD", _casa(hierarchie))

    def test_chemin_incoherent(self, tmp_path):
        _, hierarchie, registre, _ = _pile(tmp_path)
        casa = _casa(hierarchie)
        with pytest.raises(InvalidPathError):
            registre.upsert(
                "82307", "HAMZA", "ABAD",
                CheminHierarchique(casa.division_id, casa.service_id, casa.section_id + 99),
            )

    def test_modifier(self, tmp_path):
        _, hierarchie, registre, _ = _pile(tmp_path)
        employe, _ = registre.upsert("82307", "HAMZA", "ABAD", _casa(hierarchie))
        modifie = registre.modifier(employe.id, "Hamza", "Abad", _casa(hierarchie, ""))
        assert modifie.matricule == "82307"
        assert modifie.nom == "Abad"
        assert modifie.equipe_id is None

    def test_modifier_inconnu(self, tmp_path):
        _, hierarchie, registre, _ = _pile(tmp_path)
        with pytest.raises(NotFoundError):
            registre.modifier(99, "X", "Y", _casa(hierarchie))


class TestLecture:
    """Tests de consultation et de tri."""

    def test_get_inconnu(self, tmp_path):
        _, _, registre, _ = _pile(tmp_path)
        with pytest.raises(NotFoundError):
            registre.get(1)
        with pytest.raises(NotFoundError):
            registre.get_par_matricule("00000")

    def test_tri_par_matricule(self, tmp_path):
        _, hierarchie, registre, _ = _pile(tmp_path)
        for matricule, nom in (("85024", "BENALI"), ("82307", "ABAD"), ("90112", "CHAKIR")):
            registre.upsert(matricule, "X", nom, _casa(hierarchie))
        assert [e.matricule for e in registre.lister()] == ["82307", "85024", "90112"]

    def test_tri_par_nom_accents(self, tmp_path):
        _, hierarchie, registre, _ = _pile(tmp_path)
        registre.upsert("1", "Sara", "Zaki", _casa(hierarchie))
        registre.upsert("2", "Hamza", "Élamri", _casa(hierarchie))
        registre.upsert("3", "Karim", "Benali", _casa(hierarchie))
        registre.upsert("4", "Anas", "Benali", _casa(hierarchie))
        noms = [(e.nom, e.prenom) for e in registre.lister(tri="nom")]
        assert noms == [("Benali", "Anas"), ("Benali", "Karim"), ("Élamri", "Hamza"), ("Zaki", "Sara")]

    def test_tri_inconnu(self, tmp_path):
        _, _, registre, _ = _pile(tmp_path)
        with pytest.raises(ValueError):
            registre.lister(tri="age")

    def test_recherche_et_division(self, tmp_path):
        _, hierarchie, registre, _ = _pile(tmp_path)
        casa = _casa(hierarchie)
        afourer = hierarchie.resolve_path(
            "Division Exploitation AFOURER", "Service Maintenance Afourer",
            "Section Ligne Afourer", "Equipe Lignes Tadla",
        )
        registre.upsert("82307", "HAMZA", "ABAD", casa)
        registre.upsert("70001", "Youssef", "Alaoui", afourer)

        assert [e.matricule for e in registre.lister(recherche="abad")] == ["82307"]
        assert [e.matricule for e in registre.lister(recherche="tadla")] == ["70001"]
        assert [e.matricule for e in registre.lister(recherche="maintenance")] == ["70001", "82307"]
        assert [e.matricule for e in registre.lister(division_id=casa.division_id)] == ["82307"]


class TestSuppression:
    """Tests de la suppression en cascade."""

    def test_cascade_habilitations(self, tmp_path):
        _, hierarchie, registre, ledger = _pile(tmp_path)
        abad, _ = registre.upsert("82307", "HAMZA", "ABAD", _casa(hierarchie))
        autre, _ = registre.upsert("85024", "KARIM", "BENALI", _casa(hierarchie))
        ht = ledger.create(abad.id, "HT", ["H1V"], date(2022, 10, 1), date(2025, 10, 1))
        st = ledger.create(abad.id, "ST", ["H1N", "H1T"], date(2022, 10, 1), date(2025, 10, 1))
        conservee = ledger.create(autre.id, "HT", ["HC"], date(2022, 7, 1), date(2025, 7, 1))

        assert registre.supprimer(abad.id) == 2

        with pytest.raises(NotFoundError):
            registre.get(abad.id)
        for hab in (ht, st):
            with pytest.raises(NotFoundError):
                ledger.get(hab.id)
        assert ledger.get(conservee.id).employe_id == autre.id

    def test_supprimer_inconnu(self, tmp_path):
        _, _, registre, _ = _pile(tmp_path)
        with pytest.raises(NotFoundError):
            registre.supprimer(7)
