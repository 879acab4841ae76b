import shutil
import secrets
import tempfile
import threading
import logging
from pathlib import Path
from typing import Dict, List, Optional
from passenc.domain.errors import WorkspaceError


class TemporaryWorkspace:
    """Allocates job-scoped scratch directories and removes them by job id.

    One instance may be shared by concurrent jobs; each job only ever touches
    the directories registered under its own id.
    """

    def __init__(self, base_dir: Optional[Path] = None):
        self.base_dir = Path(base_dir) if base_dir else Path(tempfile.gettempdir())
        self.logger = logging.getLogger(__name__)
        self._dirs: Dict[str, List[Path]] = {}
        self._lock = threading.Lock()

    def create_scratch_dir(self, permissions: int = 0o777, max_attempts: int = 50, job_id: str = "passenc") -> Path:
        """Creates a fresh directory named after job_id plus a random suffix."""
        if max_attempts < 1:
            raise WorkspaceError("max_attempts must be at least 1")
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise WorkspaceError(f"Cannot create workspace base {self.base_dir}: {e}") from e

        for _ in range(max_attempts):
            path = self.base_dir / f"{job_id}-{secrets.token_hex(4)}"
            try:
                path.mkdir(mode=permissions)
            except FileExistsError:
                continue
            except OSError as e:
                raise WorkspaceError(f"Cannot create scratch directory {path}: {e}") from e
            # mkdir mode is filtered by the umask
            path.chmod(permissions)
            with self._lock:
                self._dirs.setdefault(job_id, []).append(path)
            self.logger.debug(f"Created scratch directory {path}")
            return path

        raise WorkspaceError(
            f"Unable to create a scratch directory for {job_id} after {max_attempts} attempts"
        )

    def clean(self, job_id: str):
        """Removes every directory created for job_id. Safe to call repeatedly."""
        with self._lock:
            dirs = self._dirs.pop(job_id, [])
        errors = []
        for path in dirs:
            try:
                shutil.rmtree(path)
            except FileNotFoundError:
                continue
            except OSError as e:
                errors.append(f"{path}: {e}")
            else:
                self.logger.debug(f"Removed scratch directory {path}")
        if errors:
            raise WorkspaceError(f"Failed to clean workspace for {job_id}: {'; '.join(errors)}")
