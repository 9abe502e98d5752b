"""Shared fixtures: a three-member flat group with fixed ids."""

from __future__ import annotations

import pytest

from models import Group, GroupBook, Member


@pytest.fixture
def book() -> GroupBook:
    group = Group(id="g1", name="Flat 4B")
    members = [
        Member(id="A", name="Asha", group_id="g1", is_admin=True),
        Member(id="B", name="Ben", group_id="g1"),
        Member(id="C", name="Chen", group_id="g1"),
    ]
    return GroupBook(group=group, members=members)
