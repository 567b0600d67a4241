# domain/delivery_service.py
import logging
from typing import Any, Dict, List, Optional

from photobooth.domain.errors import DeliveryError
from photobooth.infrastructure.delivery.mailer import EmailAdapter
from photobooth.infrastructure.delivery.printer import PrintAdapter
from photobooth.infrastructure.delivery.storage import SaveAdapter, share_url

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter('%(asctime)s [%(levelname)s] %(message)s', '%Y-%m-%d %H:%M:%S')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False

METHODS = ("print", "email", "save", "share")


class DeliveryService:
    """Hands finished composites to the delivery adapters.

    Never recomposes: on failure the DeliveryError carries the composites so
    the caller can offer another method with the same output.
    """

    def __init__(self, printer: PrintAdapter = None, mailer: EmailAdapter = None, saver: SaveAdapter = None):
        self.printer = printer or PrintAdapter()
        self.mailer = mailer or EmailAdapter()
        self.saver = saver or SaveAdapter()

    async def deliver(self, method: str, composites: List[str], template_name: str = "strip",
                      email: Optional[str] = None, copies: int = 1) -> Dict[str, Any]:
        if method not in METHODS:
            raise DeliveryError(f"Unknown delivery method '{method}'", method=method, composite=composites)
        try:
            if method == "print":
                result = {"spool_file": await self.printer.print_photos(composites, template_name, copies)}
            elif method == "email":
                await self.mailer.send_photos(email, composites, template_name)
                result = {"email": email}
            elif method == "save":
                result = {"paths": await self.saver.save(composites)}
            else:
                result = {"url": share_url()}
        except DeliveryError as e:
            e.composite = composites
            logger.error(f"Delivery via {method} failed: {e.message}")
            raise
        except OSError as e:
            logger.error(f"Delivery via {method} failed: {e}", exc_info=True)
            raise DeliveryError(f"{method} delivery failed: {e}", method=method, composite=composites) from e

        logger.info(f"Delivered {len(composites)} composites via {method}.")
        return {"method": method, **result}
