"""Path confinement for job documents and configured directories."""

import re
from pathlib import Path

import structlog

logger = structlog.get_logger()

# uuid4 hex plus the dashes/underscores used by hand-written ids
JOB_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{0,127}$")


class SecurityError(Exception):
    """A user-supplied name resolved outside its base directory."""

    pass


class PathSanitizer:
    """Resolves caller-supplied names strictly inside one base directory.

    Symlinks are resolved before the containment check, so a link that
    points outside the base is rejected like a ``../`` name.
    """

    def __init__(self, base_dir: Path):
        self.base_dir = Path(base_dir).resolve()

    def resolve(self, name: str) -> Path:
        """Resolve ``name`` relative to the base directory.

        Raises:
            SecurityError: If the result escapes the base directory
        """
        candidate = (self.base_dir / name.replace("\0", "")).resolve()
        if candidate != self.base_dir and not candidate.is_relative_to(self.base_dir):
            logger.warning(
                "path_escape_blocked",
                base_dir=str(self.base_dir),
                name=name,
                resolved=str(candidate),
            )
            raise SecurityError(f"Path escapes {self.base_dir}: {name}")
        return candidate

    def job_document(self, job_id: str) -> Path:
        """Path of the JSON document for ``job_id``.

        Raises:
            SecurityError: If the id is not a plain identifier
        """
        if not JOB_ID_PATTERN.match(job_id):
            logger.warning("invalid_job_id_rejected", job_id=job_id)
            raise SecurityError(f"Invalid job id: {job_id!r}")
        return self.resolve(f"{job_id}.json")
