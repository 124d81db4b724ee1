"""
Tests for the JSON file fallback store
"""
import json
import os
import pytest

from services.fallback_store import FallbackStore


@pytest.fixture
def store(tmp_path):
    return FallbackStore(str(tmp_path / 'fallback'))


@pytest.mark.unit
class TestFallbackStore:
    """Tests for FallbackStore"""

    def test_empty_collection(self, store):
        """Test that a missing file reads as empty"""
        assert store.all('businesses') == []
        assert store.get('businesses', 'biz_1') is None

    def test_save_and_get(self, store):
        """Test that saved records are stamped and readable"""
        saved = store.save('businesses', {'id': 'biz_1', 'name': 'Big Iron'})

        assert saved['created_at']
        assert saved['updated_at']
        assert store.get('businesses', 'biz_1')['name'] == 'Big Iron'
        assert os.path.exists(os.path.join(store.folder, 'businesses.json'))

    def test_save_replaces_by_id(self, store):
        """Test that saving an existing id replaces the record"""
        first = store.save('businesses', {'id': 'biz_1', 'name': 'Big Iron'})
        store.save('businesses', {'id': 'biz_1', 'name': 'Bigger Iron', 'created_at': first['created_at']})

        records = store.all('businesses')
        assert len(records) == 1
        assert records[0]['name'] == 'Bigger Iron'
        assert records[0]['created_at'] == first['created_at']

    def test_save_requires_id(self, store):
        """Test that records without an id are refused"""
        with pytest.raises(ValueError):
            store.save('businesses', {'name': 'Nameless'})

    def test_delete(self, store):
        """Test deleting present and absent records"""
        store.save('businesses', {'id': 'biz_1'})

        assert store.delete('businesses', 'biz_1') is True
        assert store.delete('businesses', 'biz_1') is False
        assert store.all('businesses') == []

    def test_no_temp_files_left(self, store):
        """Test that writes leave only the collection file behind"""
        store.save('businesses', {'id': 'biz_1'})
        store.save('customers', {'id': 'cust_1'})

        assert sorted(os.listdir(store.folder)) == ['businesses.json', 'customers.json']

    def test_corrupt_file_reads_empty(self, store):
        """Test that an unreadable file is treated as an empty collection"""
        os.makedirs(store.folder)
        with open(os.path.join(store.folder, 'businesses.json'), 'w') as f:
            f.write('{not json')

        assert store.all('businesses') == []

    def test_non_list_file_reads_empty(self, store):
        """Test that a file holding something other than a list is ignored"""
        os.makedirs(store.folder)
        with open(os.path.join(store.folder, 'businesses.json'), 'w') as f:
            json.dump({'id': 'biz_1'}, f)

        assert store.all('businesses') == []
