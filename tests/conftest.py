"""Shared fixtures: sessions and workspaces with predictable grid ids."""

import itertools
from typing import Callable

import pytest

from serializer import Serializer
from session import FretboardSession
from workspace import WorkspaceModel


def make_ids() -> Callable[[], str]:
    counter = itertools.count(1)
    return lambda: f"grid_{next(counter)}"


@pytest.fixture
def model() -> WorkspaceModel:
    return WorkspaceModel(id_factory=make_ids())


@pytest.fixture
def session() -> FretboardSession:
    return FretboardSession(id_factory=make_ids(), serializer=Serializer(clock=lambda: 1000))
