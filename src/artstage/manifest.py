from __future__ import annotations

import re
import tomllib
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .config import StageConfig
from .errors import ConfigError
from .filters import parse_patterns, split_robocopy_filters
from .models import ArtifactSpec

_TOKEN = re.compile(r"\$\((\w+)\)|\$\{(\w+)\}")

PatternField = Union[str, List[str]]


class ArtifactDeclaration(BaseModel):
    """One [[artifact]] table of the manifest."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    source: Optional[str] = None
    files: List[str] = Field(default_factory=list)
    destination: str
    include: PatternField = ""
    exclude: PatternField = ""
    dir_exclude: PatternField = ""
    robocopy: Optional[str] = Field(
        default=None,
        description="Legacy combined filter string, e.g. '*exe *dll /XF *.pdb'",
    )
    flatten: bool = False
    recursive: bool = True
    verify_exists: bool = False
    always_copy: bool = False

    @model_validator(mode="after")
    def _one_source_form(self) -> "ArtifactDeclaration":
        if bool(self.source) == bool(self.files):
            raise ValueError("declare exactly one of 'source' or 'files'")
        return self


class Manifest(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    properties: Dict[str, str] = Field(default_factory=dict)
    artifacts: List[ArtifactDeclaration] = Field(default_factory=list, alias="artifact")


def render_template(value: str, properties: Mapping[str, str]) -> str:
    """Replace $(Name) / ${Name} tokens; property names are case-insensitive."""
    lookup = {key.lower(): val for key, val in properties.items()}

    def _sub(match: re.Match) -> str:
        name = match.group(1) or match.group(2)
        try:
            return lookup[name.lower()]
        except KeyError:
            raise ConfigError(f"Unknown property $({name}) in {value!r}") from None

    return _TOKEN.sub(_sub, value)


def _resolve_path(value: str, properties: Mapping[str, str], base_dir: Path) -> Path:
    path = Path(render_template(value, properties)).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return path


def builtin_properties(config: StageConfig) -> Dict[str, str]:
    props: Dict[str, str] = {"Configuration": config.configuration}
    if config.output_path is not None:
        props["OutputPath"] = str(config.output_path)
    if config.artifacts_path is not None:
        props["ArtifactsPath"] = str(config.artifacts_path)
    return props


def load_manifest(path: Path) -> Manifest:
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigError(f"Manifest not found: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Manifest {path} is not valid TOML: {exc}") from exc
    try:
        return Manifest.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Manifest {path} is invalid: {exc}") from exc


def _filters(decl: ArtifactDeclaration) -> Tuple[Tuple[str, ...], Tuple[str, ...], Tuple[str, ...]]:
    includes = parse_patterns(decl.include)
    excludes = parse_patterns(decl.exclude)
    dir_excludes = parse_patterns(decl.dir_exclude)
    if decl.robocopy:
        legacy = split_robocopy_filters(decl.robocopy)
        includes += legacy.includes
        excludes += legacy.excludes
        dir_excludes += legacy.dir_excludes
    return includes, excludes, dir_excludes


def declaration_to_specs(
    decl: ArtifactDeclaration,
    properties: Mapping[str, str],
    base_dir: Path,
) -> List[ArtifactSpec]:
    includes, excludes, dir_excludes = _filters(decl)
    destination = _resolve_path(decl.destination, properties, base_dir)
    common = dict(
        destination_folder=destination,
        include_filters=includes,
        exclude_filters=excludes,
        dir_excludes=dir_excludes,
        flatten=decl.flatten,
        recursive=decl.recursive,
        verify_exists=decl.verify_exists,
        always_copy=decl.always_copy,
    )
    if decl.source:
        return [ArtifactSpec(source_path=_resolve_path(decl.source, properties, base_dir), **common)]
    return [
        ArtifactSpec(
            source_path=_resolve_path(item, properties, base_dir),
            source_kind="file",
            **common,
        )
        for item in decl.files
    ]


def manifest_specs(manifest: Manifest, config: StageConfig, base_dir: Path) -> List[ArtifactSpec]:
    builtins = builtin_properties(config)
    properties = dict(builtins)
    for key, value in manifest.properties.items():
        properties[key] = render_template(value, builtins)
    specs: List[ArtifactSpec] = []
    for decl in manifest.artifacts:
        specs.extend(declaration_to_specs(decl, properties, base_dir))
    return specs


def default_specs(config: StageConfig) -> List[ArtifactSpec]:
    """The implicit output-path artifact: OutputPath -> ArtifactsPath."""
    if not config.default_artifacts or config.artifacts_path is None:
        return []
    source = config.default_source or config.output_path
    if source is None:
        return []
    return [
        ArtifactSpec(
            source_path=Path(source),
            destination_folder=Path(config.artifacts_path),
            include_filters=parse_patterns(config.default_include),
        )
    ]


def collect_specs(config: StageConfig) -> List[ArtifactSpec]:
    specs = default_specs(config)
    if config.manifest is not None:
        manifest_path = Path(config.manifest)
        manifest = load_manifest(manifest_path)
        specs.extend(manifest_specs(manifest, config, manifest_path.resolve().parent))
    return specs
