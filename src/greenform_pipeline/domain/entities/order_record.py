from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class OrderRecord:
    """Green form verification documents for one order.

    Paths are opaque strings as returned by the order service; turning them
    into display URLs is a presentation concern.
    """

    order_id: str
    cnic: str | None
    full_name: str | None
    cnic_front_path: str | None = None
    cnic_back_path: str | None = None
    customer_image_path: str | None = None
    signature_path: str | None = None
    utility_bill_path: str | None = None

    @classmethod
    def from_payload(cls, data: Mapping[str, Any], *, order_id: str) -> "OrderRecord":
        """Builds a record from the `data` object of a lookup response.

        The requested order_id is used when the payload does not echo one back.
        """
        return cls(
            order_id=_text(data.get("orderID")) or order_id,
            cnic=_text(data.get("cnic")),
            full_name=_text(data.get("fullName")),
            cnic_front_path=_text(data.get("cnicUrl")),
            cnic_back_path=_text(data.get("cnicBackUrl")),
            customer_image_path=_text(data.get("customerImage")),
            signature_path=_text(data.get("signature")),
            utility_bill_path=_text(data.get("utilityBill")),
        )

    def document_paths(self) -> dict[str, str | None]:
        return {
            "cnic_front": self.cnic_front_path,
            "cnic_back": self.cnic_back_path,
            "customer_image": self.customer_image_path,
            "signature": self.signature_path,
            "utility_bill": self.utility_bill_path,
        }


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
