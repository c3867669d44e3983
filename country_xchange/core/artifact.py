import logging
import os

from country_xchange.core.errors import ArtifactRenderError
from country_xchange.core.image_generator import generate_summary_image

logger = logging.getLogger("country_xchange.artifact")


class ArtifactCache:
    """The summary image of the latest refresh, kept at a fixed path."""

    def __init__(self, cache_dir, filename="summary.png"):
        self.cache_dir = cache_dir
        self.path = os.path.join(cache_dir, filename)

    def exists(self):
        return os.path.isfile(self.path)

    def read(self):
        with open(self.path, "rb") as fh:
            return fh.read()

    def render_summary(self, records, refreshed_at):
        """Render ``records`` over whatever image is currently cached."""
        tmp_path = f"{self.path}.tmp"
        try:
            os.makedirs(self.cache_dir, exist_ok=True)
            generate_summary_image(records, refreshed_at, tmp_path)
            os.replace(tmp_path, self.path)
        except (OSError, ValueError) as e:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise ArtifactRenderError(str(e)) from e
        logger.info("Summary image written to %s", self.path)
        return self.path
