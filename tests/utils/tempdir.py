from contextlib import contextmanager
from pathlib import Path
import shutil
import uuid

TMP_ROOT = Path(__file__).resolve().parents[1] / "tmp"


@contextmanager
def managed_temp_dir(prefix: str, root: Path = TMP_ROOT):
    base_tmp = Path(root)
    base_tmp.mkdir(parents=True, exist_ok=True)
    tmp_path = base_tmp / f"{prefix}_{uuid.uuid4().hex}"
    tmp_path.mkdir(parents=True, exist_ok=True)
    try:
        yield tmp_path
    finally:
        shutil.rmtree(tmp_path, ignore_errors=True)
