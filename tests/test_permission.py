import logging
import threading

import pytest

from sizeof_extensions import permission
from sizeof_extensions.exceptions import AccessDenied, InsufficientPermission, ReflectiveAccessWarning
from sizeof_extensions.inspect import AttributeField, ItemField, SlotField
from sizeof_extensions.permission import (
    AuditedOverride,
    DefaultAccessGuard,
    Escalator,
    Level,
    default_escalator,
)


class Account:
    def __init__(self):
        self.__pin = 1234
        self.owner = "me"


def _private_field():
    return AttributeField("_Account__pin", Account)


def _public_field():
    return AttributeField("owner", Account)


@pytest.fixture
def quiet():
    permission.disable_warnings()
    try:
        yield
    finally:
        permission.enable_warnings()


def test_levels_accept_values_and_aliases():
    assert Level(2) is Level.OVERRIDE
    assert Level("override") is Level.OVERRIDE
    assert Level(-1) is Level.UNSET
    assert Level("unchanged") is Level.UNCHANGED
    assert Level(Level.SET) is Level.SET
    assert Level.SET == 1
    assert Level.SET == "set"
    assert str(Level.OVERRIDE) == "override"
    assert "set" in Level
    assert 2 in Level
    assert "bogus" not in Level
    with pytest.raises(ValueError):
        Level("bogus")


def test_default_guard():
    guard = DefaultAccessGuard()
    assert guard.permits(_public_field())
    assert not guard.permits(_private_field())
    assert not guard.permits(SlotField("real", complex, complex.__dict__["real"]))
    assert guard.permits(ItemField("[0]", list, 1))


def test_set_consults_the_guard(escalator):
    field = escalator.modify(_public_field(), Level.SET)
    assert field.accessible

    with pytest.raises(AccessDenied):
        escalator.modify(_private_field(), Level.SET)


def test_unset_and_unchanged(escalator):
    field = escalator.modify(_public_field())
    escalator.modify(field, Level.UNCHANGED)
    assert field.accessible
    escalator.modify(field, "unset")
    assert not field.accessible
    escalator.modify(field, Level.UNCHANGED)
    assert not field.accessible


def test_override_bypasses_the_guard(escalator, override, quiet):
    field = _private_field()
    assert escalator.modify(field, Level.OVERRIDE) is field
    assert field.accessible
    assert field.get(Account()) == 1234
    assert override.calls[-1] is field


def test_override_issues_a_warning(escalator):
    with pytest.warns(ReflectiveAccessWarning, match="Account._Account__pin"):
        escalator.override(_private_field())


def test_warnings_toggle():
    permission.disable_warnings()
    try:
        assert not permission.warnings_enabled()
        with pytest.raises(RuntimeError, match="already disabled"):
            permission.disable_warnings()
    finally:
        permission.enable_warnings()
    assert permission.warnings_enabled()
    with pytest.raises(RuntimeError, match="already enabled"):
        permission.enable_warnings()


def test_probe_runs_once(escalator, override):
    assert escalator.can_override
    assert escalator.can_override
    assert len(override.calls) == 1
    assert override.calls[0].name == "_Probe__probe"


def test_probe_runs_once_under_concurrent_first_use(escalator, override):
    barrier = threading.Barrier(8)
    results = []

    def probe():
        barrier.wait()
        results.append(escalator.can_override)

    threads = [threading.Thread(target=probe) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results == [True] * 8
    assert len(override.calls) == 1


def test_vetoed_probe_is_recorded_and_not_repeated(vetoing_override, caplog):
    escalator = Escalator(vetoing_override)
    with caplog.at_level(logging.WARNING, logger="sizeof_extensions.permission"):
        assert escalator.can_override is False
    assert "permission overriding will not work" in caplog.text

    for _ in range(3):
        with pytest.raises(InsufficientPermission):
            escalator.override(_private_field())
    assert vetoing_override.calls == 1


def test_unexpected_probe_errors_propagate():
    class Broken:
        def attempt(self, field):
            raise KeyError("boom")

    with pytest.raises(KeyError):
        Escalator(Broken()).can_override


def test_denied_probe_disables_override(denying_override):
    escalator = Escalator(denying_override)
    assert not escalator.can_override
    with pytest.raises(InsufficientPermission):
        escalator.override(_public_field())


def test_per_field_refusal_raises_insufficient_permission(quiet):
    class ProbeOnly:
        def attempt(self, field):
            if field.name == "_Probe__probe":
                return True
            raise RuntimeError("audit hook refused")

    escalator = Escalator(ProbeOnly())
    field = _private_field()
    with pytest.raises(InsufficientPermission) as info:
        escalator.override(field)
    assert isinstance(info.value.__cause__, RuntimeError)
    assert not field.accessible


def test_try_override_prefers_override(escalator, quiet):
    field = escalator.try_override(_private_field())
    assert field.accessible


def test_try_override_falls_back_to_set(denying_override):
    escalator = Escalator(denying_override)
    assert escalator.try_override(_public_field()).accessible
    with pytest.raises(AccessDenied):
        escalator.try_override(_private_field())


def test_audited_override_raises_the_audit_event(monkeypatch):
    events = []
    monkeypatch.setattr(permission.sys, "audit", lambda event, *args: events.append((event, args)))

    assert AuditedOverride().attempt(_private_field()) is True
    assert events == [(permission.AUDIT_EVENT, (Account, "_Account__pin"))]


def test_default_escalator_is_shared():
    assert default_escalator() is default_escalator()
    assert isinstance(default_escalator().mechanism, AuditedOverride)
    assert isinstance(default_escalator().guard, DefaultAccessGuard)
