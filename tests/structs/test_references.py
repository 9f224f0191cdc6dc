import pytest

from shimmer._cogs.structs.references import WorkKey, make_key


def test_key_with_namespace():
    key = make_key('ns1', 'name1')
    assert key.namespace == 'ns1'
    assert key.name == 'name1'
    assert str(key) == 'ns1/name1'


@pytest.mark.parametrize('namespace', [None, ''])
def test_key_without_namespace(namespace):
    key = make_key(namespace, 'name1')
    assert key.namespace is None
    assert key.name == 'name1'
    assert str(key) == 'name1'


def test_keys_are_equal_by_value():
    assert make_key('ns1', 'name1') == WorkKey('ns1', 'name1')
    assert make_key('', 'name1') == make_key(None, 'name1')
    assert make_key('ns1', 'name1') != make_key('ns2', 'name1')
    assert len({make_key('ns1', 'name1'), make_key('ns1', 'name1')}) == 1
