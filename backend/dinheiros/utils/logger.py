import logging
import sys

from dinheiros.config import settings

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

# Extractors log skipped rows at DEBUG; keep pdfminer's own chatter out of it.
logging.getLogger("pdfminer").setLevel(logging.WARNING)

logger = logging.getLogger("dinheiros")
