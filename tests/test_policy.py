from __future__ import annotations

import pytest

from seatbooking.exceptions import Forbidden, Unauthenticated
from seatbooking.models import Identity
from seatbooking.policy import Decision, OperationClass, authorize, require

USER = Identity("alice", "Alice")
ADMIN = Identity("admin", "Administrator", is_admin=True)


@pytest.mark.parametrize(
    ("operation", "identity", "expected"),
    [
        (OperationClass.PUBLIC, None, Decision.ALLOW),
        (OperationClass.PUBLIC, USER, Decision.ALLOW),
        (OperationClass.AUTHENTICATED, None, Decision.UNAUTHENTICATED),
        (OperationClass.AUTHENTICATED, USER, Decision.ALLOW),
        (OperationClass.AUTHENTICATED, ADMIN, Decision.ALLOW),
        (OperationClass.ADMIN, None, Decision.UNAUTHENTICATED),
        (OperationClass.ADMIN, USER, Decision.FORBIDDEN),
        (OperationClass.ADMIN, ADMIN, Decision.ALLOW),
    ],
)
def test_authorize_matrix(operation, identity, expected) -> None:
    assert authorize(operation, identity) is expected


def test_require_raises_distinct_denials() -> None:
    with pytest.raises(Unauthenticated):
        require(OperationClass.ADMIN, None)
    with pytest.raises(Forbidden):
        require(OperationClass.ADMIN, USER)


def test_require_returns_identity_when_allowed() -> None:
    assert require(OperationClass.AUTHENTICATED, USER) is USER
    assert require(OperationClass.PUBLIC, None) is None
