import datetime

import pytest

from shimmer._cogs.structs.bodies import Body, deletion_time, \
                                         get_controller_of, get_key, is_terminating


def test_body_is_a_readonly_view(make_object):
    raw = make_object('Gateway', 'gw1')
    body = Body(raw)
    assert body.raw is raw
    assert body['kind'] == 'Gateway'
    assert body.kind == 'Gateway'
    assert body.meta is body.metadata
    assert body.meta.name == 'gw1'
    assert body.meta.namespace == 'ns1'
    assert body.meta.uid == 'uid-Gateway-gw1'
    assert dict(body) == raw
    with pytest.raises(TypeError):
        body['kind'] = 'Other'  # type: ignore


def test_body_without_metadata():
    body = Body({'kind': 'Gateway'})
    assert body.meta.name is None
    assert body.meta.namespace is None
    assert body.meta.deletion_timestamp is None
    assert list(body.meta.owner_references) == []


def test_controller_is_found_among_owners(make_object):
    raw = make_object('Certificate', 'c1', controller=('Gateway', 'gw1'), owner=('Secret', 's1'))
    ref = get_controller_of(Body(raw))
    assert ref is not None
    assert ref['kind'] == 'Gateway'
    assert ref['name'] == 'gw1'


def test_controller_is_absent_for_owned_only(make_object):
    raw = make_object('Certificate', 'c1', owner=('Gateway', 'gw1'))
    assert get_controller_of(Body(raw)) is None


def test_controller_is_absent_for_orphans(make_object):
    raw = make_object('Certificate', 'c1')
    assert get_controller_of(Body(raw)) is None


def test_key_of_a_namespaced_object(make_object):
    key = get_key(Body(make_object('Gateway', 'gw1', 'ns1')))
    assert str(key) == 'ns1/gw1'


def test_key_of_a_cluster_object(make_object):
    key = get_key(Body(make_object('Gateway', 'gw1', None)))
    assert key.namespace is None
    assert str(key) == 'gw1'


def test_key_of_a_nameless_object():
    with pytest.raises(ValueError):
        get_key(Body({'metadata': {}}))


def test_terminating_by_the_deletion_marker(make_object):
    assert is_terminating(Body(make_object('Gateway', 'gw1', deleted='2020-12-31T23:59:59Z')))
    assert not is_terminating(Body(make_object('Gateway', 'gw1')))


def test_deletion_time_parsed(make_object):
    body = Body(make_object('Gateway', 'gw1', deleted='2020-12-31T23:59:59Z'))
    assert deletion_time(body) == datetime.datetime(2020, 12, 31, 23, 59, 59,
                                                    tzinfo=datetime.timezone.utc)


def test_deletion_time_unparseable_but_still_terminating(make_object):
    body = Body(make_object('Gateway', 'gw1', deleted='soon'))
    assert deletion_time(body) is None
    assert is_terminating(body)


def test_deletion_time_absent(make_object):
    assert deletion_time(Body(make_object('Gateway', 'gw1'))) is None
