import pytest

from ledgerdesk.errors import ConcurrentModificationError, NotFound, PersistenceError, ValidationError
from ledgerdesk.store.local_store import LocalRecordStore


@pytest.fixture(params=['sql', 'local'])
def any_store(request, store, local_store):
    return store if request.param == 'sql' else local_store


def test_create_get_and_version(any_store):
    created = any_store.create('leads', 'l-1', {'customerName': 'Asha'})
    assert created.version == 1
    doc = any_store.get('leads', 'l-1')
    assert doc.data == {'customerName': 'Asha'}
    assert doc.to_dict() == {'id': 'l-1', 'customerName': 'Asha'}


def test_duplicate_create_rejected(any_store):
    any_store.create('leads', 'l-1', {})
    with pytest.raises(ValidationError):
        any_store.create('leads', 'l-1', {})


def test_put_with_stale_version_fails(any_store):
    any_store.create('customers', 'c-1', {'address': 'old'})
    first = any_store.get('customers', 'c-1')
    any_store.put('customers', 'c-1', {'address': 'new'}, expected_version=first.version)

    with pytest.raises(ConcurrentModificationError):
        any_store.put('customers', 'c-1', {'address': 'lost update'}, expected_version=first.version)
    assert any_store.get('customers', 'c-1').data == {'address': 'new'}


def test_append_skips_known_ids(any_store):
    any_store.create('customers', 'c-1', {'works': []})
    any_store.append_to_array_field('customers', 'c-1', 'works', {'id': 'w-1', 'workName': 'Grill'})
    any_store.append_to_array_field('customers', 'c-1', 'works', {'id': 'w-1', 'workName': 'Grill'})
    any_store.append_to_array_field('customers', 'c-1', 'works', {'id': 'w-2', 'workName': 'Net'})
    works = any_store.get('customers', 'c-1').data['works']
    assert [w['id'] for w in works] == ['w-1', 'w-2']


def test_append_rejects_other_entry_under_taken_id(any_store):
    any_store.create('customers', 'c-1', {'works': []})
    any_store.append_to_array_field('customers', 'c-1', 'works', {'id': 'w-1', 'workName': 'Grill'})
    before = any_store.get('customers', 'c-1')
    with pytest.raises(ConcurrentModificationError):
        any_store.append_to_array_field('customers', 'c-1', 'works', {'id': 'w-1', 'workName': 'Net'})
    after = any_store.get('customers', 'c-1')
    assert after.data == before.data
    assert after.version == before.version


def test_update_fields_merges(any_store):
    any_store.create('materials', 'm-1', {'materialName': 'Mesh', 'unit': 'sqft'})
    any_store.update_fields('materials', 'm-1', {'unit': 'roll'})
    assert any_store.get('materials', 'm-1').data == {'materialName': 'Mesh', 'unit': 'roll'}


def test_query_filters_and_orders(any_store):
    any_store.create('expenses', 'e-1', {'expenseName': 'Petrol', 'category': 'Fuel'})
    any_store.create('expenses', 'e-2', {'expenseName': 'Diesel', 'category': 'Fuel'})
    any_store.create('expenses', 'e-3', {'expenseName': 'Lunch', 'category': 'Food'})
    docs = any_store.query('expenses', lambda d: d['category'] == 'Fuel', order_by='expenseName')
    assert [d.id for d in docs] == ['e-2', 'e-1']
    docs = any_store.query('expenses', order_by='expenseName', descending=True)
    assert [d.id for d in docs] == ['e-1', 'e-3', 'e-2']


def test_delete_and_missing(any_store):
    any_store.create('qr_codes', 'q-1', {})
    any_store.delete('qr_codes', 'q-1')
    assert not any_store.exists('qr_codes', 'q-1')
    with pytest.raises(NotFound):
        any_store.get('qr_codes', 'q-1')
    with pytest.raises(NotFound):
        any_store.delete('qr_codes', 'q-1')


def test_local_store_persists_to_disk(tmp_path):
    path = str(tmp_path / 'records.json')
    store = LocalRecordStore(path=path)
    store.create('leads', 'l-1', {'customerName': 'Asha'})
    store.append_to_array_field('leads', 'l-1', 'comments', {'id': 'c-1', 'comment': 'Call back'})

    reopened = LocalRecordStore(path=path)
    doc = reopened.get('leads', 'l-1')
    assert doc.data['comments'] == [{'id': 'c-1', 'comment': 'Call back'}]
    assert doc.version == 2


class FlakyStore(LocalRecordStore):
    transient_errors = (ConnectionError,)

    def __init__(self, failures, **kwargs):
        super().__init__(**kwargs)
        self.failures = failures
        self.calls = 0

    def _append(self, collection, doc_id, field, value):
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError('store offline')
        return super()._append(collection, doc_id, field, value)


def test_append_retries_transient_errors():
    store = FlakyStore(failures=2, max_retries=3, retry_backoff=0)
    store.create('customers', 'c-1', {'works': []})
    store.append_to_array_field('customers', 'c-1', 'works', {'id': 'w-1'})
    assert store.calls == 3
    assert store.get('customers', 'c-1').data['works'] == [{'id': 'w-1'}]


def test_append_gives_up_after_max_retries():
    store = FlakyStore(failures=10, max_retries=2, retry_backoff=0)
    store.create('customers', 'c-1', {'works': []})
    with pytest.raises(PersistenceError):
        store.append_to_array_field('customers', 'c-1', 'works', {'id': 'w-1'})
    assert store.calls == 3
    assert store.get('customers', 'c-1').data['works'] == []
