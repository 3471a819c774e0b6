"""Tests for the mediator's registration and dispatch."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import pytest

from crudforge.application.mediator import Mediator
from crudforge.cancellation import CancellationToken
from crudforge.exceptions import HandlerNotFoundError, HandlerRegistrationError
from crudforge.features.values import (
    CreateValueCommand,
    ExportValuesCsvQuery,
    GetByIdValueQuery,
    build_value_mediator,
)
from crudforge.infrastructure.scope import RequestScope


@dataclass(frozen=True)
class Ping:
    text: str


@dataclass(frozen=True)
class Pong:
    text: str


class Echo:
    def __init__(self) -> None:
        self.calls: list[tuple[Any, CancellationToken | None]] = []

    def handle(self, message: Any, *, cancel: CancellationToken | None = None) -> str:
        self.calls.append((message, cancel))
        return message.text.upper()


class TestMediator:
    def test_dispatches_by_type(self) -> None:
        mediator = Mediator()
        echo = Echo()
        mediator.register(Ping, echo)
        token = CancellationToken()
        assert mediator.send(Ping("hi"), cancel=token) == "HI"
        assert echo.calls == [(Ping("hi"), token)]

    def test_unregistered_type(self) -> None:
        mediator = Mediator()
        mediator.register(Ping, Echo())
        with pytest.raises(HandlerNotFoundError, match="Pong"):
            mediator.send(Pong("x"))

    def test_subclasses_are_not_matched(self) -> None:
        @dataclass(frozen=True)
        class LoudPing(Ping):
            pass

        mediator = Mediator()
        mediator.register(Ping, Echo())
        with pytest.raises(HandlerNotFoundError):
            mediator.send(LoudPing("x"))

    def test_duplicate_registration(self) -> None:
        mediator = Mediator()
        mediator.register(Ping, Echo())
        with pytest.raises(HandlerRegistrationError, match="already handled by Echo"):
            mediator.register(Ping, Echo())

    def test_registered_types(self) -> None:
        mediator = Mediator()
        mediator.register(Ping, Echo())
        mediator.register(Pong, Echo())
        assert mediator.registered_types() == [Ping, Pong]


class TestValueMediator:
    def test_registers_every_message(self, mediator: Mediator) -> None:
        registered = mediator.registered_types()
        assert len(registered) == 11
        assert CreateValueCommand in registered
        assert GetByIdValueQuery in registered
        assert ExportValuesCsvQuery in registered

    def test_extends_existing_mediator(self, scope: RequestScope) -> None:
        base = Mediator()
        base.register(Ping, Echo())
        extended = build_value_mediator(scope, base)
        assert extended is base
        assert len(base.registered_types()) == 12

    def test_cannot_register_twice(self, mediator: Mediator, scope: RequestScope) -> None:
        with pytest.raises(HandlerRegistrationError):
            build_value_mediator(scope, mediator)
