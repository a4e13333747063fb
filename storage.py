import re
import time
from pathlib import Path


def safe_filename(original: str) -> str:
    return re.sub(r"[^A-Za-z0-9._-]", "_", original) or "resume"


class ResumeStore:
    """Stores resume files on local disk under ``<owner>/<job>/<ms>-<name>``."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def save(self, owner_id: str, job_id: str, file_name: str, content: bytes) -> str:
        key = f"{owner_id}/{job_id}/{int(time.time() * 1000)}-{safe_filename(file_name)}"
        path = self.root / key
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            f.write(content)
        return key
