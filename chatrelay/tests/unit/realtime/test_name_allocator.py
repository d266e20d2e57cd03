"""
Tests for display name allocation.
"""

from unittest.mock import Mock

import pytest

from chatrelay.realtime.name_allocator import NameAllocation, NameAllocator
from chatrelay.realtime.session_registry import SessionRegistry


@pytest.fixture
def registry():
    """Provide an empty registry."""
    return SessionRegistry()


def _named(registry, name):
    session = registry.create(Mock())
    registry.rename(session, name)
    return session


def test_free_name_is_granted_unchanged(registry):
    """Test an unused name is granted as requested."""
    allocation = NameAllocator().allocate("alice", registry)

    assert allocation == NameAllocation(granted="alice", changed=False)


def test_taken_name_gets_suffix(registry):
    """Test a collision appends the next counter value."""
    _named(registry, "alice")

    allocation = NameAllocator().allocate("alice", registry)

    assert allocation.granted == "alice1"
    assert allocation.changed is True


def test_counter_is_shared_across_requests(registry):
    """Test suffixes keep increasing across different base names."""
    allocator = NameAllocator()
    _named(registry, "alice")
    _named(registry, "bob")

    assert allocator.allocate("alice", registry).granted == "alice1"
    assert allocator.allocate("bob", registry).granted == "bob2"


def test_counter_skips_suffixes_already_in_use(registry):
    """Test allocation keeps drawing until the candidate is free."""
    allocator = NameAllocator()
    _named(registry, "alice")
    _named(registry, "alice1")
    _named(registry, "alice2")

    allocation = allocator.allocate("alice", registry)

    assert allocation.granted == "alice3"


def test_counter_never_resets(registry):
    """Test a used suffix is not reissued after its holder leaves."""
    allocator = NameAllocator()
    holder = _named(registry, "alice")
    assert allocator.allocate("alice", registry).granted == "alice1"

    registry.remove(holder.session_id)
    _named(registry, "alice")

    assert allocator.allocate("alice", registry).granted == "alice2"


def test_own_current_name_is_not_a_collision(registry):
    """Test re-requesting your own name is granted unchanged."""
    alice = _named(registry, "alice")

    allocation = NameAllocator().allocate("alice", registry, requester=alice)

    assert allocation == NameAllocation(granted="alice", changed=False)


def test_empty_name_always_collides(registry):
    """Test an empty request is turned into a suffix-only name."""
    allocation = NameAllocator().allocate("", registry)

    assert allocation.granted == "1"
    assert allocation.changed is True


def test_granted_names_stay_unique_under_repeated_requests(registry):
    """Test many identical requests converge to distinct names."""
    allocator = NameAllocator()
    granted = []
    for _ in range(20):
        session = registry.create(Mock())
        name = allocator.allocate("guest", registry, requester=session).granted
        registry.rename(session, name)
        granted.append(name)

    assert len(set(granted)) == len(granted)
    assert granted[0] == "guest"
