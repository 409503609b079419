from __future__ import annotations

import json

import allure
import pytest

from venture_forge.errors import ArtifactContractError
from venture_forge.orchestrator.artifacts import (
    ArtifactField,
    ArtifactKind,
    decode_artifact,
    encode_artifact,
    schema_for,
)

pytestmark = [
    allure.epic("Task Orchestration"),
    allure.feature("Artifact Contracts"),
]


def test_encode_keeps_extra_keys_and_unicode() -> None:
    value = {"mission": "Café crews first", "vision": "Every harbor", "extra": [1]}

    raw = encode_artifact(ArtifactField.MISSION_VISION, value)

    assert "Café" in raw
    assert decode_artifact(ArtifactField.MISSION_VISION, raw) == value


def test_missing_required_keys_are_named() -> None:
    with pytest.raises(ArtifactContractError, match="competitors, trends"):
        encode_artifact(ArtifactField.MARKET_RESEARCH, {"summary": "crowded"})


def test_contract_error_is_a_value_error() -> None:
    with pytest.raises(ValueError, match="JSON object"):
        encode_artifact(ArtifactField.BRAND_IDENTITY, ["Tidewise"])


def test_api_endpoints_are_a_text_document() -> None:
    schema = schema_for(ArtifactField.API_ENDPOINTS)

    assert schema.kind is ArtifactKind.TEXT
    assert json.loads(encode_artifact(ArtifactField.API_ENDPOINTS, "# GET /tides")) == (
        "# GET /tides"
    )
    with pytest.raises(ArtifactContractError, match="non-empty text"):
        encode_artifact(ArtifactField.API_ENDPOINTS, "   ")


def test_decode_rejects_corrupt_stored_value() -> None:
    with pytest.raises(ArtifactContractError, match="not valid JSON"):
        decode_artifact(ArtifactField.SCORECARD, "{broken")
    with pytest.raises(ArtifactContractError, match="overallScore"):
        decode_artifact(
            ArtifactField.SCORECARD,
            json.dumps({"marketSize": 1, "feasibility": 2, "innovation": 3}),
        )
