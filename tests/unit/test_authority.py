from __future__ import annotations

from pathlib import Path

import pytest

from artstage.authority import classify_phase, gate_specs, should_produce_artifacts
from artstage.models import ArtifactSpec, PhaseContext, PhaseRole


def test_single_and_outer_phases_are_authoritative() -> None:
    assert should_produce_artifacts(PhaseContext(role=PhaseRole.SINGLE)) is True
    assert should_produce_artifacts(PhaseContext(role=PhaseRole.OUTER)) is True


def test_inner_phase_is_not_authoritative() -> None:
    assert should_produce_artifacts(PhaseContext(role=PhaseRole.INNER, configuration="net46")) is False


def test_gate_specs_empties_inner_phase(tmp_path: Path) -> None:
    specs = [ArtifactSpec(source_path=tmp_path / "bin", destination_folder=tmp_path / "out")]
    assert gate_specs(PhaseContext(role=PhaseRole.INNER), specs) == []
    assert gate_specs(PhaseContext(role=PhaseRole.OUTER), specs) == specs


def test_classify_multi_configuration_build() -> None:
    outer = classify_phase(["net46", "net472"], None)
    inner = classify_phase(["net46", "net472"], "net472")
    assert outer.role == PhaseRole.OUTER
    assert inner.role == PhaseRole.INNER
    assert inner.configuration == "net472"
    assert inner.configurations == ("net46", "net472")


def test_classify_single_configuration_build() -> None:
    assert classify_phase([], None).role == PhaseRole.SINGLE
    assert classify_phase(["net472"], "net472").role == PhaseRole.SINGLE


@pytest.mark.parametrize("role", ["inner", " INNER ", PhaseRole.INNER])
def test_explicit_role_wins(role) -> None:
    phase = classify_phase([], None, role=role)
    assert phase.role == PhaseRole.INNER


def test_phase_label() -> None:
    assert PhaseContext(role=PhaseRole.INNER, configuration="net46").label == "inner:net46"
    assert PhaseContext().label == "single"
