# Copyright 2020 Ram Rachum and collaborators.
# This program is distributed under the MIT license.

import gc

import pytest

from memoize.utils import WeakKeyIdentityDict


class Thing:
    def __eq__(self, other):
        return isinstance(other, Thing)

    __hash__ = None


def test_identity_keys():
    weak_key_identity_dict = WeakKeyIdentityDict()
    first = Thing()
    second = Thing()
    assert first == second
    weak_key_identity_dict[first] = 1
    weak_key_identity_dict[second] = 2
    assert len(weak_key_identity_dict) == 2
    assert weak_key_identity_dict[first] == 1
    assert weak_key_identity_dict[second] == 2
    assert first in weak_key_identity_dict
    assert Thing() not in weak_key_identity_dict
    assert set(map(id, weak_key_identity_dict)) == {id(first), id(second)}


def test_weak_keys():
    weak_key_identity_dict = WeakKeyIdentityDict()
    thing = Thing()
    weak_key_identity_dict[thing] = 'value'
    assert len(weak_key_identity_dict) == 1
    del thing
    gc.collect()
    assert len(weak_key_identity_dict) == 0
    assert list(weak_key_identity_dict) == []


def test_mapping_methods():
    thing = Thing()
    other_thing = Thing()
    weak_key_identity_dict = WeakKeyIdentityDict()
    weak_key_identity_dict[thing] = 1
    assert weak_key_identity_dict.get(thing) == 1
    assert weak_key_identity_dict.get(other_thing) is None
    assert weak_key_identity_dict.get(7, 'default') == 'default'
    assert 7 not in weak_key_identity_dict
    assert weak_key_identity_dict.pop(other_thing, None) is None
    with pytest.raises(KeyError):
        weak_key_identity_dict[other_thing]
    assert weak_key_identity_dict.pop(thing) == 1
    weak_key_identity_dict[thing] = 2
    del weak_key_identity_dict[thing]
    assert len(weak_key_identity_dict) == 0
    weak_key_identity_dict[thing] = 3
    assert [ref() for ref in weak_key_identity_dict.keyrefs()] == [thing]
    weak_key_identity_dict.clear()
    assert not weak_key_identity_dict
