from typing import List, Optional

from sqlalchemy.orm import Session

from dinheiros.errors import InvalidRequestError, NotFoundError
from dinheiros.models_sqlalchemy.models import CategorizationRule, Category, TransactionType
from dinheiros.utils.logger import logger

CATEGORY_TYPES = (TransactionType.income.value, TransactionType.expense.value)


class CategoryService:
    def __init__(self, db: Session):
        self.db = db

    def list_categories(self, user_id: int) -> List[Category]:
        return (
            self.db.query(Category)
            .filter(Category.user_id == user_id)
            .order_by(Category.name.asc())
            .all()
        )

    def get_category(self, category_id: int, user_id: int) -> Category:
        category = (
            self.db.query(Category)
            .filter(Category.id == category_id, Category.user_id == user_id)
            .first()
        )
        if category is None:
            raise NotFoundError("category not found")
        return category

    def create_category(
        self, user_id: int, name: str, category_type: str, description: Optional[str] = None
    ) -> Category:
        name = (name or "").strip()
        if not name:
            raise InvalidRequestError("category name is required")
        if category_type not in CATEGORY_TYPES:
            raise InvalidRequestError(f"category type must be one of: {', '.join(CATEGORY_TYPES)}")

        exists = (
            self.db.query(Category.id)
            .filter(Category.user_id == user_id, Category.name == name, Category.type == category_type)
            .first()
        )
        if exists:
            raise InvalidRequestError("category with this name and type already exists")

        category = Category(user_id=user_id, name=name, type=category_type, description=description)
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        logger.info(f"[CategoryService] Created category {category.id} ({category.type}) for user {user_id}")
        return category

    def delete_category(self, category_id: int, user_id: int) -> None:
        category = self.get_category(category_id, user_id)
        # Rules pointing at the category go with it.
        self.db.query(CategorizationRule).filter(
            CategorizationRule.category_dst == category.id
        ).delete(synchronize_session=False)
        self.db.delete(category)
        self.db.commit()
