from __future__ import annotations

import re
from typing import Collection, Iterable, List, Optional

from sqlalchemy.orm import Session

from dinheiros.errors import InvalidRequestError, NotFoundError
from dinheiros.models_sqlalchemy.models import CategorizationRule, Category
from dinheiros.services.pdf_extractors import ParsedTransaction
from dinheiros.utils.logger import logger

RULE_TYPE_EXACT = "exact"
RULE_TYPE_REGEX = "regex"
RULE_TYPES = (RULE_TYPE_EXACT, RULE_TYPE_REGEX)


def rule_matches(rule: CategorizationRule, description: str) -> bool:
    """``exact`` compares case-sensitively; anything else is a regex search."""
    if rule.type == RULE_TYPE_EXACT:
        return rule.value == description
    try:
        return re.search(rule.value, description) is not None
    except re.error:
        logger.warning(f"Invalid regex in categorization rule {rule.id}: {rule.value}")
        return False


def apply_categorization_rules(
    rules: Iterable[CategorizationRule],
    transactions: List[ParsedTransaction],
    known_category_ids: Optional[Collection[int]] = None,
) -> List[ParsedTransaction]:
    """Tag transactions with the category of the first active rule that matches.

    Rules whose destination category is not in ``known_category_ids`` (when
    given) are passed over. Returns the same list, updated in place.
    """
    active_rules = [rule for rule in rules if rule.active]
    if not active_rules:
        return transactions

    categorized = 0
    for txn in transactions:
        for rule in active_rules:
            if not rule_matches(rule, txn.description):
                continue
            if known_category_ids is not None and rule.category_dst not in known_category_ids:
                continue
            if rule.category_dst not in txn.category_ids:
                txn.category_ids.append(rule.category_dst)
            categorized += 1
            break

    logger.info(f"Categorization rules matched {categorized} of {len(transactions)} transactions")
    return transactions


class CategorizationRuleService:
    def __init__(self, db: Session):
        self.db = db

    def list_rules(self, user_id: int) -> List[CategorizationRule]:
        return (
            self.db.query(CategorizationRule)
            .filter(CategorizationRule.user_id == user_id)
            .order_by(CategorizationRule.id.asc())
            .all()
        )

    def get_rule(self, rule_id: int, user_id: int) -> CategorizationRule:
        rule = (
            self.db.query(CategorizationRule)
            .filter(CategorizationRule.id == rule_id, CategorizationRule.user_id == user_id)
            .first()
        )
        if rule is None:
            raise NotFoundError("categorization rule not found")
        return rule

    def _check_rule(self, user_id: int, rule_type: str, value: str, category_dst: int) -> None:
        if rule_type not in RULE_TYPES:
            raise InvalidRequestError(f"rule type must be one of: {', '.join(RULE_TYPES)}")
        if not value:
            raise InvalidRequestError("rule value is required")
        if rule_type == RULE_TYPE_REGEX:
            try:
                re.compile(value)
            except re.error as e:
                raise InvalidRequestError(f"invalid regex: {e}")
        category = (
            self.db.query(Category)
            .filter(Category.id == category_dst, Category.user_id == user_id)
            .first()
        )
        if category is None:
            raise NotFoundError("category not found")

    def create_rule(
        self, user_id: int, name: str, rule_type: str, value: str, category_dst: int, active: bool = True
    ) -> CategorizationRule:
        self._check_rule(user_id, rule_type, value, category_dst)
        rule = CategorizationRule(
            user_id=user_id,
            name=name,
            type=rule_type,
            value=value,
            category_dst=category_dst,
            active=active,
        )
        self.db.add(rule)
        self.db.commit()
        self.db.refresh(rule)
        logger.info(f"[CategorizationRuleService] Created rule {rule.id} for user {user_id}")
        return rule

    def update_rule(self, rule_id: int, user_id: int, **changes) -> CategorizationRule:
        rule = self.get_rule(rule_id, user_id)
        rule_type = changes.get("type") or rule.type
        value = changes.get("value") or rule.value
        category_dst = changes.get("category_dst") or rule.category_dst
        self._check_rule(user_id, rule_type, value, category_dst)

        for field in ("name", "type", "value", "category_dst", "active"):
            if changes.get(field) is not None:
                setattr(rule, field, changes[field])
        self.db.commit()
        self.db.refresh(rule)
        return rule

    def delete_rule(self, rule_id: int, user_id: int) -> None:
        rule = self.get_rule(rule_id, user_id)
        self.db.delete(rule)
        self.db.commit()

    def categorize(self, user_id: int, transactions: List[ParsedTransaction]) -> List[ParsedTransaction]:
        """Apply the user's rules to freshly extracted transactions."""
        category_ids = {
            category_id for (category_id,) in
            self.db.query(Category.id).filter(Category.user_id == user_id).all()
        }
        return apply_categorization_rules(self.list_rules(user_id), transactions, category_ids)
