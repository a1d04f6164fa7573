"""
Reading and writing the generated JSON artifacts.

The output directory is always passed in by the caller. Files are
written to a temporary sibling first and moved into place, so a crash
never leaves a half-written artifact behind.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, List, Sequence, Tuple, Union

from .claims import PointsMap
from .errors import SourceUnreadable
from .merkle import MerkleCommitment

log = logging.getLogger(__name__)

CLAIM_POINTS_FILE = "claim_points.json"
MERKLE_TREE_FILE = "merkle_tree.json"

PathLike = Union[str, Path]


def write_json_files(items: Sequence[Tuple[PathLike, Any]]) -> List[Path]:
    """
    Write several JSON files as one step.

    Every file is first written to a temporary sibling. Nothing is moved
    into place until all of them are written, so a failure while
    serializing any item leaves every target untouched.
    """
    staged: List[Tuple[str, Path]] = []
    try:
        for path, data in items:
            target = Path(path)
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", dir=target.parent)
            staged.append((tmp_name, target))
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.write("\n")

        for tmp_name, target in staged:
            os.replace(tmp_name, target)
    except BaseException:
        for tmp_name, _ in staged:
            Path(tmp_name).unlink(missing_ok=True)
        raise

    targets = [target for _, target in staged]
    for target in targets:
        log.info("wrote %s", target)
    return targets


def write_json(path: PathLike, data: Any) -> Path:
    return write_json_files([(path, data)])[0]


def read_json(path: PathLike) -> Any:
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise SourceUnreadable(f"cannot read JSON file {str(path)!r}: {e}") from e


def save_artifact(output_dir: PathLike, name: str, data: Any) -> Path:
    return write_json(Path(output_dir) / name, data)


def save_points(output_dir: PathLike, points: PointsMap, name: str = CLAIM_POINTS_FILE) -> Path:
    return save_artifact(output_dir, name, points.to_dict())


def save_commitment(output_dir: PathLike, commitment: MerkleCommitment, name: str = MERKLE_TREE_FILE) -> Path:
    return save_artifact(output_dir, name, commitment.to_json())


def save_tree(output_dir: PathLike, points: PointsMap, commitment: MerkleCommitment) -> List[Path]:
    """Write the points map and its tree; neither file is replaced unless both were written."""
    out = Path(output_dir)
    return write_json_files([
        (out / CLAIM_POINTS_FILE, points.to_dict()),
        (out / MERKLE_TREE_FILE, commitment.to_json()),
    ])


def load_points(path: PathLike) -> PointsMap:
    data = read_json(path)
    if not isinstance(data, dict):
        raise SourceUnreadable(f"{str(path)!r} must contain a JSON object of identity -> amount")
    return PointsMap.from_dict(data)


def load_commitment(path: PathLike) -> MerkleCommitment:
    data = read_json(path)
    if not isinstance(data, dict):
        raise SourceUnreadable(f"{str(path)!r} must contain a JSON object with root, depth and leaves")
    try:
        return MerkleCommitment.from_json(data)
    except (KeyError, TypeError, ValueError) as e:
        raise SourceUnreadable(f"{str(path)!r} is not a merkle tree artifact: {e}") from e
