import pytest
from pydantic import ValidationError as PydanticValidationError

from admin_gateway.config import Settings


def test_signature_algorithm_is_normalized(monkeypatch):
    monkeypatch.setenv("ADMIN_GATEWAY_PAYFAST_SIGNATURE_ALGORITHM", "SHA256")

    assert Settings().PAYFAST_SIGNATURE_ALGORITHM == "sha256"


@pytest.mark.parametrize("algorithm", ["shake_128", "shake_256", "whirlpool-9000"])
def test_unusable_signature_algorithm_fails_at_load(monkeypatch, algorithm):
    monkeypatch.setenv("ADMIN_GATEWAY_PAYFAST_SIGNATURE_ALGORITHM", algorithm)

    with pytest.raises(PydanticValidationError):
        Settings()
