"""Tests for the per-request tenant scope."""

import pytest

from marketplace_api.core.errors import TenantRequired
from marketplace_api.core.logging import tenant_id_var
from marketplace_api.core.tenancy import TenantScope, scoped


@pytest.mark.unit
def test_set_current_and_clear():
    scope = TenantScope()
    assert scope.current() is None
    assert not scope.is_set

    scope.set_current("acme")
    assert scope.current() == "acme"
    assert scope.require() == "acme"
    assert tenant_id_var.get() == "acme"

    scope.clear()
    assert scope.current() is None
    assert tenant_id_var.get() is None


@pytest.mark.unit
def test_require_without_tenant_raises():
    with pytest.raises(TenantRequired) as exc:
        TenantScope().require()
    assert exc.value.status_code == 400
    assert exc.value.error_type == "tenant_required"


@pytest.mark.unit
def test_empty_tenant_is_rejected():
    with pytest.raises(TenantRequired):
        TenantScope().set_current("")


@pytest.mark.unit
def test_scope_cannot_switch_tenant():
    scope = TenantScope("acme")
    scope.set_current("acme")
    with pytest.raises(RuntimeError):
        scope.set_current("globex")
    assert scope.current() == "acme"
    scope.clear()


@pytest.mark.unit
def test_scoped_clears_on_error():
    holder = {}
    with pytest.raises(ValueError):
        with scoped("acme") as scope:
            holder["scope"] = scope
            assert tenant_id_var.get() == "acme"
            raise ValueError("boom")
    assert holder["scope"].current() is None
    assert tenant_id_var.get() is None


@pytest.mark.unit
def test_scoped_restores_outer_log_context():
    token = tenant_id_var.set("outer")
    try:
        with scoped("inner"):
            assert tenant_id_var.get() == "inner"
        assert tenant_id_var.get() == "outer"
    finally:
        tenant_id_var.reset(token)


@pytest.mark.unit
def test_independent_scopes_do_not_share_state():
    first = TenantScope("acme")
    second = TenantScope()
    assert second.current() is None
    second.set_current("globex")
    assert first.current() == "acme"
    second.clear()
    first.clear()


@pytest.mark.unit
def test_scoped_with_no_tenant_yields_empty_scope():
    with scoped(None) as scope:
        assert not scope.is_set
        with pytest.raises(TenantRequired):
            scope.require()
