"""
Card component use cases with tier enforcement.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging

from nexus_cards.core.errors import NotFoundError, TierLimitError, ValidationError
from nexus_cards.db.models import CardComponent
from nexus_cards.domain.tiers import allowed_components, can_use_component, component_limit
from nexus_cards.repositories.components import ComponentRepository
from nexus_cards.repositories.users import UserRepository
from nexus_cards.services.card_service import CardService

logger = logging.getLogger(__name__)

MUTABLE_FIELDS = (
    "order",
    "enabled",
    "config",
    "background_type",
    "background_color",
    "background_gradient_start",
    "background_gradient_end",
    "background_image_url",
)
NON_NULLABLE_FIELDS = ("order", "enabled", "config")


@dataclass
class ComponentService:

    def __post_init__(self):
        self.components = ComponentRepository()
        self.users = UserRepository()
        self.card_service = CardService()

    def available(self, user_id: str) -> dict:
        tier = self.users.tier_for(user_id)
        return {"tier": tier, "allowed_types": allowed_components(tier), "max_components": component_limit(tier)}

    def list(self, card_id: str, user_id: str) -> list[CardComponent]:
        card = self.card_service.get(card_id, user_id)
        return self.components.list_for_card(card.id)

    def get(self, card_id: str, component_id: str, user_id: str) -> CardComponent:
        card = self.card_service.get(card_id, user_id)
        component = self.components.get(component_id)
        if not component or component.card_id != card.id:
            raise NotFoundError("Component not found", code="COMPONENT_NOT_FOUND")
        return component

    def create(self, card_id: str, user_id: str, data: dict) -> CardComponent:
        card = self.card_service.get(card_id, user_id)
        tier = self.users.tier_for(user_id)
        limit = component_limit(tier)
        if self.components.count_for_card(card.id) >= limit:
            logger.info("Component limit reached on card %s (tier %s)", card.id, tier)
            raise TierLimitError(
                f"Your {tier} plan allows up to {limit} components per card",
                code="COMPONENT_LIMIT_REACHED",
            )
        ctype = str(data.get("type") or "").upper()
        if not can_use_component(ctype, tier):
            logger.info("Component %s not available on tier %s", ctype, tier)
            raise TierLimitError(f"Component type {ctype} is not available on the {tier} plan", code="COMPONENT_NOT_IN_TIER")
        values = {k: data[k] for k in MUTABLE_FIELDS if data.get(k) is not None}
        if "order" not in values:
            highest = self.components.max_order(card.id)
            values["order"] = 0 if highest is None else highest + 1
        values.setdefault("config", {})
        return self.components.create(card_id=card.id, type=ctype, **values)

    def update(self, card_id: str, component_id: str, user_id: str, data: dict) -> CardComponent:
        component = self.get(card_id, component_id, user_id)
        values = {
            k: data[k] for k in MUTABLE_FIELDS if k in data and not (k in NON_NULLABLE_FIELDS and data[k] is None)
        }
        if values.get("order") is not None and values["order"] < 0:
            raise ValidationError("Order must be zero or greater")
        if not values:
            return component
        return self.components.update(component.id, **values)

    def remove(self, card_id: str, component_id: str, user_id: str) -> None:
        component = self.get(card_id, component_id, user_id)
        self.components.delete(component.id)

    def reorder(self, card_id: str, user_id: str, items: list[dict]) -> list[CardComponent]:
        card = self.card_service.get(card_id, user_id)
        known = {c.id for c in self.components.list_for_card(card.id)}
        invalid = [str(item.get("id")) for item in items if item.get("id") not in known]
        if invalid:
            raise ValidationError(f"Invalid component ids: {', '.join(invalid)}", code="INVALID_COMPONENT_IDS")
        orders = {item["id"]: int(item["order"]) for item in items}
        if any(order < 0 for order in orders.values()):
            raise ValidationError("Order must be zero or greater")
        return self.components.reorder(card.id, orders)
