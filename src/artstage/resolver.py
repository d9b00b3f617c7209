from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, FrozenSet, Iterator, List, Tuple

from .errors import DestinationCollisionError, SourceNotFoundError
from .filters import is_case_sensitive, matches, pattern_matches
from .models import (
    ArtifactSpec,
    CaseSensitivity,
    CopyPlanEntry,
    FlattenCollisionPolicy,
)


def _is_file_source(spec: ArtifactSpec) -> bool:
    if spec.source_kind == "file":
        return True
    if spec.source_kind == "directory":
        return False
    return spec.source_path.is_file()


class ResolvedArtifact:
    """
    Lazy, restartable plan for one ArtifactSpec.

    Each iteration re-enumerates the source side, so two iterations over an
    unchanged filesystem yield identical entries. The destination side is
    never touched. Subdirectories that cannot be read are skipped and listed
    in ``unreadable`` for the most recent iteration; an unreadable root
    still raises.
    """

    def __init__(
        self,
        spec: ArtifactSpec,
        *,
        case_sensitivity: CaseSensitivity = "auto",
        flatten_collisions: FlattenCollisionPolicy = "last_wins",
    ):
        self.spec = spec
        self.case_sensitivity = case_sensitivity
        self.flatten_collisions = flatten_collisions
        self.unreadable: List[Path] = []

    def __iter__(self) -> Iterator[CopyPlanEntry]:
        if _is_file_source(self.spec):
            return self._iter_file()
        return self._iter_directory()

    def entries(self) -> List[CopyPlanEntry]:
        return list(self)

    def _accepts(self, name: str) -> bool:
        return matches(
            name,
            self.spec.include_filters,
            self.spec.exclude_filters,
            case_sensitivity=self.case_sensitivity,
        )

    def _entry(self, source: Path, relative: str) -> CopyPlanEntry:
        return CopyPlanEntry(
            source_file=source,
            destination_file=self.spec.destination_folder.joinpath(*relative.split("/")),
            relative_path=relative,
            always_copy=self.spec.always_copy,
        )

    def _iter_file(self) -> Iterator[CopyPlanEntry]:
        source = self.spec.source_path
        if not source.is_file():
            raise SourceNotFoundError(source)
        if self._accepts(source.name):
            yield self._entry(source, source.name)

    def _dir_excluded(self, name: str) -> bool:
        sensitive = is_case_sensitive(self.case_sensitivity)
        return any(
            pattern_matches(name, pattern, case_sensitive=sensitive)
            for pattern in self.spec.dir_excludes
        )

    def _walk(
        self, root: Path, ancestors: FrozenSet[Tuple[int, int]], *, top: bool = False
    ) -> Iterator[Path]:
        try:
            st = root.stat()
            with os.scandir(root) as it:
                children = list(it)
        except FileNotFoundError:
            return
        except OSError:
            if top:
                raise
            self.unreadable.append(root)
            return
        # a directory symlink pointing back up the tree would recurse forever
        key = (st.st_dev, st.st_ino)
        if key in ancestors:
            return
        ancestors = ancestors | {key}
        for child in children:
            if child.is_dir(follow_symlinks=True):
                if self.spec.recursive and not self._dir_excluded(child.name):
                    yield from self._walk(Path(child.path), ancestors)
            elif child.is_file(follow_symlinks=True):
                yield Path(child.path)

    def _iter_directory(self) -> Iterator[CopyPlanEntry]:
        root = self.spec.source_path
        if not root.is_dir():
            return
        self.unreadable = []
        seen: Dict[str, Path] = {}
        found = self._walk(root, frozenset(), top=True)
        for path in sorted(found, key=lambda p: p.relative_to(root).as_posix()):
            if not self._accepts(path.name):
                continue
            if self.spec.flatten:
                relative = path.name
                if self.flatten_collisions == "error":
                    key = relative if is_case_sensitive(self.case_sensitivity) else relative.lower()
                    if key in seen:
                        raise DestinationCollisionError(
                            self.spec.destination_folder / relative, seen[key], path
                        )
                    seen[key] = path
            else:
                relative = path.relative_to(root).as_posix()
            yield self._entry(path, relative)


def resolve(
    spec: ArtifactSpec,
    *,
    case_sensitivity: CaseSensitivity = "auto",
    flatten_collisions: FlattenCollisionPolicy = "last_wins",
) -> ResolvedArtifact:
    """
    Expand an ArtifactSpec into its copy plan.

    Missing explicit file sources (or any missing source when
    ``verify_exists`` is set) raise SourceNotFoundError here. A missing
    directory source resolves to an empty plan.
    """
    source = spec.source_path
    if not source.exists():
        if spec.source_kind == "file" or spec.verify_exists:
            raise SourceNotFoundError(source)
    return ResolvedArtifact(
        spec,
        case_sensitivity=case_sensitivity,
        flatten_collisions=flatten_collisions,
    )
