"""Tests for the reducer, the store holder and the selectors."""

import pytest

from pawbook.schemas import BookingTerms, Client, EmailAlias, MembershipPayment, PotentialDuplicate, TrainingSession
from pawbook.store import selectors
from pawbook.store.actions import Action, ActionType
from pawbook.store.entity_store import EntityStore
from pawbook.store.reducer import EntityState, apply


def _client(client_id="c1", **fields):
    return Client(id=client_id, firstName="Sam", lastName="Jones", dogName="Rex", **fields)


def _session(session_id="s1", **fields):
    data = {"sessionType": "Online", "bookingDate": "2026-03-14", "bookingTime": "10:00"}
    data.update(fields)
    return TrainingSession(id=session_id, **data)


class TestReducer:
    def test_set_replaces_collection(self):
        state = apply(EntityState(), Action(ActionType.SET_CLIENTS, [_client("a"), _client("b")]))
        state = apply(state, Action(ActionType.SET_CLIENTS, [_client("c")]))
        assert [c.id for c in state.clients] == ["c"]

    def test_apply_does_not_mutate_input(self):
        before = EntityState(clients=(_client("a"),))
        after = apply(before, Action(ActionType.DELETE_CLIENT, "a"))
        assert len(before.clients) == 1
        assert after.clients == ()

    def test_add_is_an_upsert(self):
        state = apply(EntityState(), Action(ActionType.ADD_SESSION, _session(notes="first")))
        state = apply(state, Action(ActionType.ADD_SESSION, _session(notes="echo")))
        assert len(state.sessions) == 1
        assert state.sessions[0].notes == "echo"

    def test_update_replaces_by_id_and_ignores_unknown(self):
        state = EntityState(sessions=(_session("s1"), _session("s2")))
        state = apply(state, Action(ActionType.UPDATE_SESSION, _session("s2", notes="moved")))
        assert state.sessions[1].notes == "moved"

        unchanged = apply(state, Action(ActionType.UPDATE_SESSION, _session("missing")))
        assert unchanged.sessions == state.sessions

    def test_delete_clears_matching_selection(self):
        state = EntityState(sessions=(_session("s1"),), selected_session_id="s1")
        state = apply(state, Action(ActionType.DELETE_SESSION, "s1"))
        assert state.selected_session_id is None

    def test_delete_client_drops_its_aliases(self):
        alias = EmailAlias(id="a1", clientId="c1", email="sam@example.com", isPrimary=True)
        state = EntityState(clients=(_client("c1"),))
        state = apply(state, Action(ActionType.SET_CLIENT_EMAIL_ALIASES, ("c1", [alias])))
        assert state.email_aliases["c1"] == (alias,)

        state = apply(state, Action(ActionType.DELETE_CLIENT, "c1"))
        assert "c1" not in state.email_aliases

    def test_email_aliases_mapping_is_read_only(self):
        state = apply(EntityState(), Action(ActionType.SET_CLIENT_EMAIL_ALIASES, ("c1", [])))
        with pytest.raises(TypeError):
            state.email_aliases["c2"] = ()

    def test_remove_potential_duplicate(self):
        duplicate = PotentialDuplicate(
            id="a:b",
            primaryClient=_client("a"),
            duplicateClient=_client("b"),
            confidence="high",
            suggestedAction="merge",
            createdAt="2026-01-01T00:00:00",
        )
        state = apply(EntityState(), Action(ActionType.SET_POTENTIAL_DUPLICATES, [duplicate]))
        state = apply(state, Action(ActionType.REMOVE_POTENTIAL_DUPLICATE, "a:b"))
        assert state.potential_duplicates == ()

    def test_selection(self):
        state = apply(EntityState(), Action(ActionType.SET_SELECTED_CLIENT, "c1"))
        assert state.selected_client_id == "c1"


class TestEntityStore:
    def test_listeners_see_new_state(self):
        store = EntityStore()
        seen = []
        unsubscribe = store.subscribe(lambda state, action: seen.append((len(state.clients), action.type)))

        store.dispatch(Action(ActionType.ADD_CLIENT, _client()))
        unsubscribe()
        store.dispatch(Action(ActionType.DELETE_CLIENT, "c1"))

        assert seen == [(1, ActionType.ADD_CLIENT)]

    def test_failing_listener_does_not_block_dispatch(self):
        store = EntityStore()
        calls = []

        def broken(state, action):
            raise RuntimeError("boom")

        store.subscribe(broken)
        store.subscribe(lambda state, action: calls.append(action.type))
        store.dispatch(Action(ActionType.ADD_CLIENT, _client()))

        assert len(store.state.clients) == 1
        assert calls == [ActionType.ADD_CLIENT]


class TestSelectors:
    def _state(self):
        state = EntityState(
            clients=(_client("c1", email="Sam@Example.com"), _client("c2", email="other@example.com")),
            memberships=(
                MembershipPayment(id="m1", email="sam.work@example.com", date="2026-01-10", amount=30),
                MembershipPayment(id="m2", email="other@example.com", date="2026-01-11", amount=30),
            ),
            booking_terms=(BookingTerms(id="b1", email="SAM.WORK@example.com"),),
        )
        alias = EmailAlias(id="a1", clientId="c1", email="sam.work@example.com")
        return apply(state, Action(ActionType.SET_CLIENT_EMAIL_ALIASES, ("c1", [alias])))

    def test_client_emails_primary_first_and_normalized(self):
        assert selectors.client_emails(self._state(), "c1") == ["sam@example.com", "sam.work@example.com"]

    def test_payment_under_alias_resolves_to_client(self):
        payments = selectors.payments_for_client(self._state(), "c1")
        assert [p.id for p in payments] == ["m1"]

    def test_booking_terms_signed_through_alias(self):
        state = self._state()
        assert selectors.has_signed_booking_terms(state, "c1") is True
        assert selectors.has_signed_booking_terms(state, "c2") is False
        assert selectors.has_signed_booking_terms(state, None) is False
