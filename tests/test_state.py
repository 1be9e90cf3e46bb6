"""
Tests for the change-tracked state store.

Covers change detection, bounded history, undo, subscriptions and
selector memoization.
"""
import pytest
from unittest.mock import Mock

from accessify.core.exceptions import InvalidArgumentError
from accessify.core.state import MISSING, WILDCARD, ChangeTrackedStore, is_same_value


class TestSetAndGet:

    def test_get_returns_most_recent_value(self, store):
        for value in (1, 2, 'three', None, 4.5):
            store.set('x', value)
            assert store.get('x') == value

    def test_get_missing_key_returns_none(self, store):
        assert store.get('missing') is None
        assert not store.has('missing')

    def test_setting_same_value_is_noop(self, store):
        listener = Mock()
        store.set('x', 1)
        store.subscribe('x', listener)

        store.set('x', 1)

        listener.assert_not_called()
        assert len(store.get_history()) == 1

    def test_equal_but_distinct_containers_are_changes(self, store):
        store.set('prefs', {'a': 1})
        store.set('prefs', {'a': 1})

        assert len(store.get_history()) == 2

    def test_same_container_object_is_not_a_change(self, store):
        prefs = {'a': 1}
        store.set('prefs', prefs)
        store.set('prefs', prefs)

        assert len(store.get_history()) == 1

    def test_first_set_records_missing_old_value(self, store):
        store.set('x', 1)

        record = store.get_history()[0]
        assert record.key == 'x'
        assert record.old_value is MISSING
        assert record.new_value == 1
        assert record.timestamp > 0

    def test_read_helpers(self, store):
        store.set('a', 1).set('b', 2)

        assert store.size() == 2
        assert len(store) == 2
        assert 'a' in store
        assert store.keys() == ['a', 'b']
        assert store.values() == [1, 2]
        assert store.entries() == [('a', 1), ('b', 2)]
        assert store.get_state() == {'a': 1, 'b': 2}

    def test_get_state_is_a_snapshot(self, store):
        store.set('a', 1)
        snapshot = store.get_state()
        snapshot['a'] = 99

        assert store.get('a') == 1


class TestSameValue:

    @pytest.mark.parametrize("old, new, expected", [
        (1, 1, True),
        ('a', 'a', True),
        (None, None, True),
        (1, 1.0, False),
        (True, 1, False),
        ([1], [1], False),
        (float('nan'), float('nan'), False),
    ])
    def test_is_same_value(self, old, new, expected):
        assert is_same_value(old, new) is expected

    def test_missing_is_never_same_as_a_value(self):
        assert not is_same_value(MISSING, None)
        assert is_same_value(MISSING, MISSING)


class TestHistory:

    def test_history_never_exceeds_cap(self):
        store = ChangeTrackedStore(max_history=5)
        for i in range(20):
            store.set('x', i)

        assert len(store.get_history()) == 5

    def test_oldest_record_evicted_after_cap_plus_one_sets(self):
        cap = 5
        store = ChangeTrackedStore(max_history=cap)
        for i in range(1, cap + 2):
            store.set('x', i)

        for _ in range(cap):
            assert store.undo() is True

        assert store.get('x') == 1
        assert store.undo() is False
        assert store.get('x') == 1

    def test_default_cap_is_fifty(self, store):
        for i in range(60):
            store.set('x', i)

        assert len(store.get_history()) == 50

    def test_invalid_cap_rejected(self):
        with pytest.raises(InvalidArgumentError):
            ChangeTrackedStore(max_history=0)

    def test_clear_history(self, store):
        store.set('x', 1)
        store.clear_history()

        assert store.get_history() == []
        assert store.undo() is False


class TestUndo:

    def test_undo_on_empty_history_returns_false(self, store):
        listener = Mock()
        store.subscribe(WILDCARD, listener)

        assert store.undo() is False
        assert store.get_state() == {}
        listener.assert_not_called()

    def test_redundant_set_is_not_a_separate_undo_step(self, store):
        store.set('x', 1)
        store.set('x', 2)
        store.set('x', 2)

        store.undo()

        assert store.get('x') == 1

    def test_undo_first_set_deletes_key(self, store):
        store.set('x', 1)
        store.undo()

        assert not store.has('x')

    def test_undo_delete_restores_value(self, store):
        store.set('x', 1)
        store.delete('x')
        store.undo()

        assert store.get('x') == 1

    def test_undo_does_not_append_history(self, store):
        store.set('x', 1)
        store.set('x', 2)
        store.undo()

        assert len(store.get_history()) == 1

    def test_undo_notifies_subscribers(self, store):
        listener = Mock()
        store.set('x', 1)
        store.set('x', 2)
        store.subscribe('x', listener)

        store.undo()

        listener.assert_called_once_with(1, 2, 'x')

    def test_undo_clear_restores_previous_state(self, store):
        store.set('a', 1).set('b', 2)
        store.clear()

        assert store.get_state() == {}
        assert store.undo() is True
        assert store.get_state() == {'a': 1, 'b': 2}

    def test_undo_bulk_set_reverses_each_key(self, store):
        store.set('a', 1)
        store.set_state({'a': 2, 'b': 3})

        store.undo()
        store.undo()

        assert store.get_state() == {'a': 1}


class TestBulkOperations:

    def test_set_state_notifies_wildcard_once_with_diff(self, store):
        listener = Mock()
        store.set('a', 1)
        store.subscribe(WILDCARD, listener)

        store.set_state({'a': 1, 'b': 2, 'c': 3})

        listener.assert_called_once_with(
            {'b': {'old': None, 'new': 2}, 'c': {'old': None, 'new': 3}},
            None,
            WILDCARD
        )

    def test_set_state_without_changes_is_silent(self, store):
        listener = Mock()
        store.set('a', 1)
        store.subscribe(WILDCARD, listener)

        store.set_state({'a': 1})

        listener.assert_not_called()

    def test_set_state_rejects_non_mapping(self, store):
        with pytest.raises(InvalidArgumentError):
            store.set_state([('a', 1)])

    def test_clear_notifies_wildcard_once(self, store):
        listener = Mock()
        store.set('a', 1)
        store.subscribe(WILDCARD, listener)

        store.clear()

        listener.assert_called_once_with({}, {'a': 1}, WILDCARD)

    def test_delete_missing_key_is_noop(self, store):
        store.delete('missing')

        assert store.get_history() == []


class TestSubscriptions:

    def test_key_and_wildcard_subscribers_notified(self, store):
        key_listener = Mock()
        wildcard_listener = Mock()
        store.subscribe('x', key_listener)
        store.subscribe(WILDCARD, wildcard_listener)

        store.set('x', 5)

        key_listener.assert_called_once_with(5, None, 'x')
        wildcard_listener.assert_called_once_with(5, None, 'x')

    def test_unsubscribe_function(self, store):
        listener = Mock()
        unsubscribe = store.subscribe('x', listener)

        unsubscribe()
        store.set('x', 1)

        listener.assert_not_called()

    def test_failing_subscriber_is_isolated(self, store):
        second = Mock()

        def failing(new, old, key):
            raise RuntimeError("render failed")

        store.subscribe('x', failing)
        store.subscribe('x', second)

        store.set('x', 1)

        second.assert_called_once_with(1, None, 'x')
        assert store.get('x') == 1

    def test_subscriber_may_set_again(self, store):
        def follow(new, old, key):
            if new < 3:
                store.set('x', new + 1)

        store.subscribe('x', follow)
        store.set('x', 1)

        assert store.get('x') == 3
        assert len(store.get_history()) == 3

    def test_subscribe_rejects_non_callable(self, store):
        with pytest.raises(InvalidArgumentError):
            store.subscribe('x', 'callback')


class TestSelectors:

    def test_selector_is_memoized_until_store_changes(self, store):
        selector = Mock(side_effect=lambda state: state.get('x', 0) * 2)
        select = store.create_selector(selector)
        store.set('x', 2)

        assert select() == 4
        assert select() == 4
        assert selector.call_count == 1

        store.set('x', 3)

        assert select() == 6
        assert selector.call_count == 2

    def test_noop_set_keeps_memoized_result(self, store):
        selector = Mock(return_value='derived')
        store.set('x', 1)
        select = store.create_selector(selector)

        select()
        store.set('x', 1)
        select()

        assert selector.call_count == 1

    def test_selector_recomputes_after_undo(self, store):
        store.set('x', 1)
        store.set('x', 2)
        select = store.create_selector(lambda state: state['x'])

        assert select() == 2
        store.undo()
        assert select() == 1

    def test_create_selector_rejects_non_callable(self, store):
        with pytest.raises(InvalidArgumentError):
            store.create_selector(None)
