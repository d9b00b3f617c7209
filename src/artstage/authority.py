from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Union

from .models import ArtifactSpec, PhaseContext, PhaseRole


def should_produce_artifacts(phase: PhaseContext) -> bool:
    """
    Return True when this phase owns artifact production.

    For a build fanned out into an outer (aggregating) phase plus inner
    per-configuration phases, only the outer phase copies. A single-phase
    build is always authoritative.
    """
    return phase.role in (PhaseRole.SINGLE, PhaseRole.OUTER)


def gate_specs(phase: PhaseContext, specs: Iterable[ArtifactSpec]) -> List[ArtifactSpec]:
    if not should_produce_artifacts(phase):
        return []
    return list(specs)


def classify_phase(
    configurations: Sequence[str] = (),
    current: Optional[str] = None,
    *,
    role: Union[PhaseRole, str, None] = None,
) -> PhaseContext:
    """
    Build a PhaseContext from properties supplied by the host build.

    An explicit role always wins. Otherwise: several configurations and no
    current one is the outer phase; a current configuration while several are
    declared is an inner phase; anything else is a single-phase build.
    """
    configs = tuple(c for c in configurations if c)
    current = current or None
    if role:
        if not isinstance(role, PhaseRole):
            role = PhaseRole(role.strip().lower())
        return PhaseContext(role=role, configuration=current, configurations=configs)
    if len(configs) > 1:
        if current:
            return PhaseContext(role=PhaseRole.INNER, configuration=current, configurations=configs)
        return PhaseContext(role=PhaseRole.OUTER, configurations=configs)
    return PhaseContext(role=PhaseRole.SINGLE, configuration=current, configurations=configs)
