"""Tests du registre des habilitations et du classement par statut."""

import sys
from datetime import date, timedelta
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

import pytest

from habilitations_tracker.config.constants import CODES_HT, CODES_ST, Famille, Statut
from habilitations_tracker.core.exceptions import (
    EmptyCodeSetError, InvalidCodeError, InvalidDateRangeError, MissingExpirationError,
    NotFoundError,
)
from habilitations_tracker.database.db_manager import Database
from habilitations_tracker.employes.employee_registry import EmployeeRegistry
from habilitations_tracker.habilitations import statut as statut_query
from habilitations_tracker.habilitations.consultation import ConsultationService
from habilitations_tracker.habilitations.ledger import HabilitationLedger, valider_codes
from habilitations_tracker.hierarchie.hierarchy_store import HierarchyStore
from habilitations_tracker.models.entites import (
    Employe, FicheEmploye, Habilitation, NomsChemin,
)

DV = date(2022, 10, 1)
DE = date(2025, 10, 1)


def _pile(tmp_path):
    db = Database(tmp_path / "h.db")
    hierarchie = HierarchyStore(db)
    registre = EmployeeRegistry(db, hierarchie)
    ledger = HabilitationLedger(db)
    chemin = hierarchie.resolve_path(
        "Division Exploitation Casa", "Service Maintenance Casa", "Section Ligne Casa", "Equipe Ligne",
    )
    employe, _ = registre.upsert("82307", "HAMZA", "ABAD", chemin)
    return ConsultationService(hierarchie, registre, ledger), employe


def _hab(expiration: date, famille=Famille.HT, codes=("H1V",), hab_id=1) -> Habilitation:
    return Habilitation(
        id=hab_id, employe_id=1, famille=famille, codes=frozenset(codes),
        date_validation=expiration - timedelta(days=1095), date_expiration=expiration,
    )


class TestVocabulaire:
    """Tests de validation des codes."""

    def test_vocabulaires_disjoints(self):
        assert not set(CODES_HT) & set(CODES_ST)

    def test_codes_valides(self):
        assert valider_codes(Famille.ST, ["H1N", " H1T "]) == frozenset({"H1N", "H1T"})

    def test_code_autre_famille(self):
        with pytest.raises(InvalidCodeError):
            valider_codes(Famille.HT, ["H1V", "H1N"])
        with pytest.raises(InvalidCodeError):
            valider_codes(Famille.ST, ["B0V"])

    def test_code_inconnu(self):
        with pytest.raises(InvalidCodeError):
            valider_codes(Famille.HT, ["HSF6"])

    def test_ensemble_vide(self):
        with pytest.raises(EmptyCodeSetError):
            valider_codes(Famille.HT, [])


class TestCreation:
    """Tests de create."""

    def test_create(self, tmp_path):
        consultation, employe = _pile(tmp_path)
        hab = consultation.ledger.create(employe.id, "ST", ["H1T", "H1N"], DV, DE, "300_03/22")
        assert hab.famille == Famille.ST
        assert hab.codes_ordonnes() == ["H1N", "H1T"]
        assert hab.numero == "300_03/22"
        assert consultation.ledger.get(hab.id) == hab

    def test_famille_inconnue(self, tmp_path):
        consultation, employe = _pile(tmp_path)
        with pytest.raises(InvalidCodeError):
            consultation.ledger.create(employe.id, "BT", ["H1V"], DV, DE)

    def test_dates_inversees(self, tmp_path):
        consultation, employe = _pile(tmp_path)
        with pytest.raises(InvalidDateRangeError):
            consultation.ledger.create(employe.id, "HT", ["H1V"], DE, DV)
        with pytest.raises(InvalidDateRangeError):
            consultation.ledger.create(employe.id, "HT", ["H1V"], DV, DV)
        assert consultation.ledger.lister_pour_employe(employe.id) == []

    def test_employe_inconnu(self, tmp_path):
        consultation, _ = _pile(tmp_path)
        with pytest.raises(NotFoundError):
            consultation.ledger.create(999, "HT", ["H1V"], DV, DE)

    def test_meme_famille_ecrase(self, tmp_path):
        consultation, employe = _pile(tmp_path)
        ledger = consultation.ledger
        premiere = ledger.create(employe.id, "HT", ["H1V"], DV, DE, document_ref="scan-1.pdf")
        seconde, cree = ledger.enregistrer(
            employe.id, "HT", ["H1V", "B1V"], date(2023, 1, 1), date(2026, 1, 1),
        )
        assert cree is False
        assert seconde.id == premiere.id
        assert seconde.codes == frozenset({"H1V", "B1V"})
        assert seconde.document_ref == "scan-1.pdf"
        assert len(ledger.lister_pour_employe(employe.id)) == 1


class TestRenouvellement:
    """Tests de renew (ecrasement sur place)."""

    def test_renew_sur_place(self, tmp_path):
        consultation, employe = _pile(tmp_path)
        ledger = consultation.ledger
        hab = ledger.create(employe.id, "HT", ["H1V"], DV, DE, "300_03/22")
        renouvelee = ledger.renew(hab.id, ["H1V", "H2V"], date(2025, 10, 2), date(2028, 10, 2), "412_10/25")
        assert renouvelee.id == hab.id
        assert renouvelee.employe_id == employe.id
        assert renouvelee.famille == Famille.HT
        assert renouvelee.codes_ordonnes() == ["H1V", "H2V"]
        assert renouvelee.numero == "412_10/25"
        assert renouvelee.date_expiration == date(2028, 10, 2)

    def test_famille_immuable(self, tmp_path):
        consultation, employe = _pile(tmp_path)
        hab = consultation.ledger.create(employe.id, "HT", ["H1V"], DV, DE)
        with pytest.raises(InvalidCodeError):
            consultation.ledger.renew(hab.id, ["H1N"], date(2025, 10, 2), date(2028, 10, 2))
        assert consultation.ledger.get(hab.id).codes == frozenset({"H1V"})

    def test_expiration_obligatoire(self, tmp_path):
        consultation, employe = _pile(tmp_path)
        hab = consultation.ledger.create(employe.id, "HT", ["H1V"], DV, DE)
        with pytest.raises(MissingExpirationError):
            consultation.ledger.renew(hab.id, ["H1V"], date(2025, 10, 2), None)
        assert consultation.ledger.get(hab.id).date_expiration == DE

    def test_renew_inconnue(self, tmp_path):
        consultation, _ = _pile(tmp_path)
        with pytest.raises(NotFoundError):
            consultation.ledger.renew(42, ["H1V"], DV, DE)

    def test_supprimer(self, tmp_path):
        consultation, employe = _pile(tmp_path)
        hab = consultation.ledger.create(employe.id, "HT", ["H1V"], DV, DE)
        consultation.ledger.supprimer(hab.id)
        with pytest.raises(NotFoundError):
            consultation.ledger.get(hab.id)


class TestClassement:
    """Tests des bornes du classement."""

    def setup_method(self):
        self.au = date(2025, 10, 1)

    def test_veille_expiree(self):
        assert statut_query.classer(_hab(self.au - timedelta(days=1)), self.au) == Statut.EXPIREE

    def test_jour_meme_expire_bientot(self):
        assert statut_query.classer(_hab(self.au), self.au) == Statut.EXPIRE_BIENTOT

    def test_trente_jours_expire_bientot(self):
        assert statut_query.classer(_hab(self.au + timedelta(days=30)), self.au) == Statut.EXPIRE_BIENTOT

    def test_trente_et_un_jours_valide(self):
        assert statut_query.classer(_hab(self.au + timedelta(days=31)), self.au) == Statut.VALIDE

    def test_seuil_configurable(self):
        hab = _hab(self.au + timedelta(days=45))
        assert statut_query.classer(hab, self.au, seuil_jours=60) == Statut.EXPIRE_BIENTOT

    def test_en_tete_expiration_la_plus_lointaine(self):
        proche = _hab(date(2025, 1, 1), hab_id=1)
        lointaine = _hab(date(2027, 1, 1), famille=Famille.ST, codes=("H1N",), hab_id=2)
        assert statut_query.latest_representative([proche, lointaine]) is lointaine
        assert statut_query.latest_representative([]) is None


class TestListesDeTravail:
    """Tests des listes de travail (expirees, bientot, resume)."""

    def _fiche(self, matricule: str, habs: list[Habilitation]) -> FicheEmploye:
        employe = Employe(int(matricule), matricule, "P", "N" + matricule, 1, 1, 1)
        return FicheEmploye(employe, NomsChemin("D", "S", "Sec"), habs)

    def test_expirees_au(self):
        au = date(2025, 10, 1)
        expiree = _hab(date(2025, 9, 1), hab_id=1)
        valide = _hab(date(2027, 1, 1), famille=Famille.ST, codes=("H1N",), hab_id=2)
        fiches = [self._fiche("82307", [expiree, valide]), self._fiche("85024", [])]
        resultat = statut_query.expirees_au(fiches, au)
        assert len(resultat) == 1
        assert resultat[0].habilitation is expiree
        assert resultat[0].employe.matricule == "82307"
        assert resultat[0].employe.nom == "N82307"

    def test_resume(self):
        au = date(2025, 10, 1)
        fiches = [
            self._fiche("1", [_hab(date(2025, 9, 1))]),
            self._fiche("2", [_hab(date(2025, 10, 15))]),
            self._fiche("3", [_hab(date(2025, 9, 1)), _hab(date(2028, 1, 1), hab_id=2)]),
            self._fiche("4", []),
        ]
        assert statut_query.resume_statuts(fiches, au) == {
            "expired": 1, "expiring-soon": 1, "valid": 1, "sans_habilitation": 1,
        }

    def test_consultation_de_bout_en_bout(self, tmp_path):
        consultation, employe = _pile(tmp_path)
        consultation.ledger.create(employe.id, "HT", ["H1V"], DV, DE)
        consultation.ledger.create(employe.id, "ST", ["H1N", "H1T"], DV, date(2025, 10, 20))

        a_renouveler = consultation.a_renouveler(date(2025, 10, 10))
        assert [e.habilitation.famille for e in a_renouveler] == [Famille.HT]
        assert [e.habilitation.famille for e in consultation.expirant_bientot(date(2025, 10, 10))] == [Famille.ST]

        ligne, = consultation.tableau(date(2025, 10, 10))
        assert ligne.en_tete.famille == Famille.ST
        assert ligne.statut == Statut.EXPIRE_BIENTOT
        assert ligne.fiche.noms.equipe == "Equipe Ligne"
