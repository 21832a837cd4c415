"""Scoped temporary directory for one composition."""

import logging
import shutil
import tempfile
import uuid
from pathlib import Path

logger = logging.getLogger(__name__)


class Workspace:
    """A private directory that is removed when the context exits.

    Removal is best effort: a failure is logged and never hides the error
    that ended the block.
    """

    def __init__(self, root_dir: Path | str | None = None, keep: bool = False):
        root = Path(root_dir) if root_dir else Path(tempfile.gettempdir())
        self.path = root / "storyreel" / uuid.uuid4().hex
        self.keep = keep

    def __enter__(self) -> Path:
        self.path.mkdir(parents=True, exist_ok=False)
        logger.debug("Created workspace %s", self.path)
        return self.path

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    def cleanup(self) -> None:
        if self.keep:
            logger.info("Keeping workspace %s", self.path)
            return
        try:
            shutil.rmtree(self.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Could not remove workspace %s: %s", self.path, e)
