import gc
import os

import pytest

from domain.errors import StoreError
from services.persistence import SERVER_TIMESTAMP, DocumentStore, Where
from utils.paths import collection_file

PATH = 'artifacts/test-app/public/data/things'


def test_server_timestamp_is_resolved_on_write(store):
    doc_id = store.add(PATH, {'name': 'a', 'createdAt': SERVER_TIMESTAMP})
    doc = store.get(PATH, doc_id)
    assert doc['id'] == doc_id
    assert doc['createdAt'].endswith('Z')


def test_collection_path_maps_to_nested_file(store):
    store.add(PATH, {'name': 'a'})
    assert os.path.exists(os.path.join(store.data_dir, 'artifacts', 'test-app', 'public', 'data', 'things.json'))
    with pytest.raises(ValueError):
        collection_file(store.data_dir, '../escape')


def test_query_with_where(store):
    store.add(PATH, {'kind': 'x'})
    store.add(PATH, {'kind': 'y'})
    store.add(PATH, {'kind': 'x'})
    assert len(store.query(PATH, [Where('kind', '==', 'x')])) == 2
    assert len(store.query(PATH, [Where('kind', 'in', ['x', 'y'])])) == 3
    assert len(store.query(PATH, [Where('kind', '!=', 'x')])) == 1


def test_subscribe_delivers_initial_and_subsequent_snapshots_in_order(store):
    store.add(PATH, {'n': 1})
    snapshots = []
    unsubscribe = store.subscribe(PATH, lambda docs: snapshots.append(sorted(d['n'] for d in docs)))
    assert snapshots == [[1]]

    doc_id = store.add(PATH, {'n': 2})
    store.update(PATH, doc_id, {'n': 3})
    store.delete(PATH, doc_id)
    assert snapshots == [[1], [1, 2], [1, 3], [1]]

    unsubscribe()
    store.add(PATH, {'n': 4})
    assert len(snapshots) == 4
    assert store.listener_count(PATH) == 0


def test_subscribe_applies_filter(store):
    seen = []
    store.subscribe(PATH, seen.append, where=[Where('owner', '==', 'me')])
    store.add(PATH, {'owner': 'me'})
    store.add(PATH, {'owner': 'you'})
    assert [len(s) for s in seen] == [0, 1, 1]


def test_failing_listener_does_not_break_writer(store):
    def boom(_docs):
        raise RuntimeError('listener bug')

    store.add(PATH, {'n': 1})
    store.subscribe(PATH, boom)
    store.add(PATH, {'n': 2})
    assert len(store.query(PATH)) == 2


def test_malformed_file_raises_store_error_and_reaches_on_error(store):
    file_path = collection_file(store.data_dir, PATH)
    os.makedirs(os.path.dirname(file_path), exist_ok=True)
    with open(file_path, 'w', encoding='utf-8') as f:
        f.write('{not json')

    with pytest.raises(StoreError):
        store.query(PATH)
    errors = []
    store.subscribe(PATH, lambda docs: None, on_error=errors.append)
    assert len(errors) == 1 and isinstance(errors[0], StoreError)


def test_update_missing_document(store):
    with pytest.raises(StoreError):
        store.update(PATH, 'nope', {'a': 1})
    assert store.delete(PATH, 'nope') is False


def test_add_unique_is_check_and_insert(store):
    first = store.add_unique(PATH, {'studentId': 'S1', 'examId': 'E1'}, ('studentId', 'examId'))
    assert first is not None
    assert store.add_unique(PATH, {'studentId': 'S1', 'examId': 'E1'}, ('studentId', 'examId')) is None
    assert store.add_unique(PATH, {'studentId': 'S1', 'examId': 'E2'}, ('studentId', 'examId')) is not None
    assert len(store.query(PATH)) == 2


def test_write_failure_surfaces_as_store_error(tmp_path, monkeypatch):
    store = DocumentStore(str(tmp_path))

    def broken_mkstemp(*args, **kwargs):
        raise PermissionError('read-only filesystem')

    monkeypatch.setattr('services.persistence.tempfile.mkstemp', broken_mkstemp)
    with pytest.raises(StoreError, match='read-only'):
        store.add(PATH, {'n': 1})


class _Watcher:
    def __init__(self):
        self.seen = []

    def on_snapshot(self, docs):
        self.seen.append(len(docs))


def test_bound_method_listener_is_dropped_with_its_owner(store):
    kept, dropped = _Watcher(), _Watcher()
    store.subscribe(PATH, kept.on_snapshot)
    store.subscribe(PATH, dropped.on_snapshot)
    assert store.listener_count(PATH) == 2

    del dropped
    gc.collect()
    store.add(PATH, {'n': 1})
    assert store.listener_count(PATH) == 1
    assert kept.seen == [0, 1]


def test_plain_function_listener_is_held_strongly(store):
    seen = []
    store.subscribe(PATH, lambda docs: seen.append(len(docs)))
    gc.collect()
    store.add(PATH, {'n': 1})
    assert seen == [0, 1]
