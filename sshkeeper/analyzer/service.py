"""SSH directory analysis service."""

import os
import stat
from collections import Counter
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

from ..errors import ValidationError
from ..util.logging import get_logger
from ..util.timeutil import timestamp_to_datetime
from .classifier import KeyClassifier
from .detectors import CONTENT_PREFIX_SIZE, DetectorChain
from .pairing import find_key_pairs
from .types import AnalysisSummary, DetectionResult, KeyInfo, KeyPairInfo, KeyPurpose, KeyType

logger = get_logger(__name__)

PERMISSION_MASK = 0o777


class AnalyzerService:
    """Detects, classifies and pairs the files of an SSH directory."""

    def __init__(
        self,
        detectors: Optional[DetectorChain] = None,
        classifier: Optional[KeyClassifier] = None,
        prefix_size: int = CONTENT_PREFIX_SIZE,
    ):
        self.detectors = detectors or DetectorChain()
        self.classifier = classifier or KeyClassifier()
        self.prefix_size = prefix_size

    def analyze_directory(self, ssh_dir: Union[str, Path]) -> DetectionResult:
        """Analyze every regular file directly inside ``ssh_dir``.

        Files that cannot be read are logged and left out; the scan itself
        still succeeds.
        """
        if not str(ssh_dir):
            raise ValidationError("Directory path cannot be empty")

        directory = Path(ssh_dir)
        logger.info(f"Starting SSH directory analysis: {directory}")

        validate_directory(directory)

        filenames = list_regular_files(directory)
        keys: List[KeyInfo] = []

        for filename in filenames:
            try:
                key_info = self.analyze_file(directory / filename, filenames)
            except OSError as e:
                logger.warning(f"Failed to analyze file {filename}: {e}")
                continue
            keys.append(key_info)

        result = self.build_result(keys)

        logger.info(
            f"Analysis completed: {result.summary.total_files} files, "
            f"{result.summary.key_pair_count} key pairs, {result.summary.service_keys} service keys"
        )
        return result

    def analyze_file(self, file_path: Path, all_files: Optional[Sequence[str]] = None) -> KeyInfo:
        """Classify one file and attach its permissions, size and mtime."""
        st = os.stat(file_path)
        if stat.S_ISDIR(st.st_mode):
            raise IsADirectoryError(f"Path is a directory, not a file: {file_path}")

        content = read_file_head(file_path, self.prefix_size)
        key_info = self.detect(file_path.name, content, all_files or [file_path.name])

        return key_info.model_copy(update={
            "permissions": st.st_mode & PERMISSION_MASK,
            "size": st.st_size,
            "mod_time": timestamp_to_datetime(st.st_mtime),
        })

    def detect(self, filename: str, content: bytes, all_files: Sequence[str] = ()) -> KeyInfo:
        """Classify a file from its name and content prefix alone."""
        key_info, detector = self.detectors.detect(filename, content[:self.prefix_size])
        key_info = self.classifier.classify(key_info)

        related = detector.related_files(key_info, all_files)
        if related:
            key_info = key_info.model_copy(update={"related_files": tuple(sorted(related))})

        return key_info

    def build_result(self, keys: Iterable[KeyInfo]) -> DetectionResult:
        """Aggregate classified keys into a DetectionResult."""
        keys = sorted(keys, key=lambda k: k.filename)
        key_pairs = find_key_pairs(keys)

        categories: Dict[str, List[KeyInfo]] = {}
        for key in keys:
            categories.setdefault(key.purpose.value, []).append(key)

        return DetectionResult(
            keys=keys,
            key_pairs=key_pairs,
            categories=categories,
            system_files=[k for k in keys if k.type.is_system],
            unknown_files=[k for k in keys if k.type == KeyType.UNKNOWN],
            summary=generate_summary(keys, key_pairs),
        )


def generate_summary(keys: Sequence[KeyInfo], key_pairs: Dict[str, KeyPairInfo]) -> AnalysisSummary:
    purposes = Counter(k.purpose for k in keys)

    return AnalysisSummary(
        total_files=len(keys),
        key_pair_count=len(key_pairs),
        service_keys=purposes[KeyPurpose.SERVICE],
        personal_keys=purposes[KeyPurpose.PERSONAL],
        work_keys=purposes[KeyPurpose.WORK],
        system_files=purposes[KeyPurpose.SYSTEM],
        unknown_files=sum(1 for k in keys if k.type == KeyType.UNKNOWN),
        format_breakdown=dict(Counter(k.format.value for k in keys)),
        purpose_breakdown={p.value: n for p, n in purposes.items()},
    )


def validate_directory(directory: Path) -> None:
    """Raise ValidationError unless ``directory`` is an existing, readable directory."""
    if not directory.exists():
        raise ValidationError(f"Directory does not exist: {directory}")

    if not directory.is_dir():
        raise ValidationError(f"Path is not a directory: {directory}")

    if not os.access(directory, os.R_OK | os.X_OK):
        raise ValidationError(f"Cannot read directory: {directory}")


def list_regular_files(directory: Path) -> List[str]:
    """Names of the regular files in ``directory``, sorted."""
    names = []
    with os.scandir(directory) as entries:
        for entry in entries:
            if entry.is_file():
                names.append(entry.name)
            elif not entry.is_dir():
                logger.debug(f"Skipping non-regular file: {entry.name}")
    return sorted(names)


def read_file_head(file_path: Path, max_bytes: int = CONTENT_PREFIX_SIZE) -> bytes:
    """Read at most ``max_bytes`` from the start of a file."""
    with open(file_path, "rb") as f:
        return f.read(max_bytes)
