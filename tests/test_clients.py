"""Tests for clients, email aliases, membership status and intake forms."""

from datetime import date

import pytest

from pawbook.domain.clients.repository import ClientRepository
from pawbook.domain.clients.schemas import ClientCreate, ClientUpdate
from pawbook.domain.clients.service import ClientService
from pawbook.domain.forms.service import FormService, dog_name_matches, resolve_form_owner
from pawbook.domain.memberships.repository import EmailAliasRepository, MembershipRepository
from pawbook.domain.memberships.service import EmailAliasService, MonthlyMembershipPolicy, add_one_month
from pawbook.errors import ClientNotFound
from pawbook.gateway import row_to_session
from pawbook.schemas import Client, MembershipPayment
from pawbook.store import selectors


class TestClientService:
    def test_create_registers_primary_alias_and_reflects(self, db, store):
        service = ClientService(db, store)
        client = service.create_client(ClientCreate(firstName="Ann", dogName="Bo", email="Ann@Example.com"))

        assert client.email == "ann@example.com"
        assert selectors.get_client(store.state, client.id) == client
        aliases = EmailAliasRepository.get_by_client_id(db, client.id)
        assert [(a.email, a.isPrimary) for a in aliases] == [("ann@example.com", True)]

    def test_email_change_moves_primary_flag(self, db):
        service = ClientService(db)
        client = service.create_client(ClientCreate(firstName="Ann", email="ann@example.com"))
        service.update_client(client.id, ClientUpdate(email="ann@work.example.com"))

        aliases = EmailAliasRepository.get_by_client_id(db, client.id)
        assert aliases[0].email == "ann@work.example.com" and aliases[0].isPrimary
        assert not aliases[1].isPrimary

    def test_missing_client(self, db):
        with pytest.raises(ClientNotFound):
            ClientService(db).update_client("missing", ClientUpdate(phone="1"))
        with pytest.raises(ClientNotFound):
            ClientService(db).delete_client("missing")

    def test_refresh_membership_uses_alias_payments(self, db):
        service = ClientService(db)
        client = service.create_client(ClientCreate(firstName="Ann", email="ann@example.com"))
        EmailAliasService(db).add_alias(client.id, "ann.old@example.com")
        MembershipRepository.create(db, {"email": "ANN.OLD@example.com", "date": "2026-01-31", "amount": 30})

        assert service.refresh_membership(client.id, today=date(2026, 2, 28)).membership is True
        assert service.refresh_membership(client.id, today=date(2026, 3, 1)).membership is False


class TestEmailAliases:
    def test_add_alias_is_idempotent(self, db, make_client):
        client = make_client()
        service = EmailAliasService(db)
        first = service.add_alias(client.id, "Sam@Example.com")
        again = service.add_alias(client.id, "sam@example.com")
        assert first.id == again.id
        assert len(service.get_aliases_by_client_id(client.id)) == 1

    def test_find_client_by_email(self, db, make_client):
        client = make_client()
        service = EmailAliasService(db)
        service.add_alias(client.id, "sam.other@example.com")
        assert service.find_client_by_email("SAM.OTHER@example.com") == client.id
        assert service.find_client_by_email("nobody@example.com") is None

    def test_membership_under_alias_resolves_to_client(self, db, make_client):
        client = make_client(email="sam@example.com")
        EmailAliasService(db).add_alias(client.id, "sam.work@example.com")
        MembershipRepository.create(db, {"email": "sam.work@example.com", "date": "2026-02-01", "amount": 30})
        MembershipRepository.create(db, {"email": "stranger@example.com", "date": "2026-02-01", "amount": 30})

        payments = MembershipRepository.get_by_client_id(db, client.id)
        assert [p.email for p in payments] == ["sam.work@example.com"]

    def test_setup_after_merge_is_repeatable(self, db, make_client):
        client = make_client(email="sam@example.com")
        service = EmailAliasService(db)
        assert service.setup_aliases_after_merge(client.id, "sam@example.com", ["a@example.com", "b@example.com"]) == 3
        assert service.setup_aliases_after_merge(client.id, "sam@example.com", ["a@example.com", "b@example.com"]) == 0

        grouped = service.get_all_aliases_by_client()
        assert grouped[client.id][0].email == "sam@example.com"

    def test_remove_alias(self, db, make_client):
        client = make_client()
        alias = EmailAliasService(db).add_alias(client.id, "x@example.com")
        assert EmailAliasService(db).remove_alias(alias.id) is True
        assert EmailAliasService(db).remove_alias(alias.id) is False


class TestMembershipPolicy:
    def _payments(self, *dates):
        return [MembershipPayment(id=str(i), email="a@example.com", date=d) for i, d in enumerate(dates)]

    def test_month_end_is_clamped(self):
        assert add_one_month(date(2026, 1, 31)) == date(2026, 2, 28)
        assert add_one_month(date(2026, 12, 15)) == date(2027, 1, 15)

    def test_latest_payment_wins(self):
        status = MonthlyMembershipPolicy().evaluate(
            Client(id="c"), self._payments("2026-01-01", "2026-03-10", "bad-date"), date(2026, 4, 1)
        )
        assert status.is_active is True
        assert status.last_payment_date == "2026-03-10"
        assert status.expiration_date == "2026-04-10"
        assert status.days_until_expiration == 9

    def test_no_payments_means_inactive(self):
        status = MonthlyMembershipPolicy().evaluate(Client(id="c"), [], date(2026, 4, 1))
        assert status.is_expired


class TestForms:
    def test_dog_name_prefix_match(self):
        client = Client(id="c", dogName="Hetty", otherDogs=["Moss"])
        assert dog_name_matches("Hetty Spaghetti", client)
        assert dog_name_matches("moss", client)
        assert not dog_name_matches("Hettyx", client)
        assert not dog_name_matches("", client)

    def test_owner_resolved_by_alias_and_dog(self, db, make_client):
        rex_owner = make_client(email="family@example.com", dogName="Rex")
        bo_owner = make_client(firstName="Jo", email="jo@example.com", dogName="Bo")
        EmailAliasService(db).add_alias(bo_owner.id, "family@example.com")

        assert resolve_form_owner(db, None, "family@example.com", "Bo") == bo_owner.id
        assert resolve_form_owner(db, None, "family@example.com", "Rex") == rex_owner.id
        assert resolve_form_owner(db, None, "family@example.com", "Luna") is None
        assert resolve_form_owner(db, None, "jo@example.com", "Luna") == bo_owner.id
        assert resolve_form_owner(db, rex_owner.id, None, None) == rex_owner.id

    def test_submission_links_empty_form_reference(self, db, make_client):
        client = make_client(email="sam@example.com")
        service = FormService(db)
        brief = service.submit_behavioural_brief({"email": "sam@example.com", "dogName": "Rex", "ownerFirstName": "Sam"})
        later = service.submit_behavioural_brief({"email": "sam@example.com", "dogName": "Rex"})

        assert brief.clientId == client.id
        assert ClientRepository.get_by_id(db, client.id).behaviouralBriefId == brief.id
        assert later.id != brief.id

        questionnaire = service.submit_behaviour_questionnaire({"clientId": client.id, "mainHelp": "Pulling"})
        assert ClientRepository.get_by_id(db, client.id).behaviourQuestionnaireId == questionnaire.id


def test_legacy_booking_time_is_trimmed():
    session = row_to_session(
        {"id": "s1", "session_type": "Online", "booking_date": "2026-03-14", "booking_time": "09:30:00"}
    )
    assert session.bookingTime == "09:30"
