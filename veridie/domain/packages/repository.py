"""Package repository - Database operations for consultants, packages and purchases"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Consultant, Package, Purchase


class PackageRepository:
    @staticmethod
    def get_consultant(db: Session, consultant_id: str) -> Optional[Consultant]:
        return db.get(Consultant, consultant_id)

    @staticmethod
    def get_consultant_by_slug(db: Session, slug: str) -> Optional[Consultant]:
        return db.query(Consultant).filter(Consultant.slug == slug).first()

    @staticmethod
    def get_consultant_for_user(db: Session, user_id: str) -> Optional[Consultant]:
        return db.query(Consultant).filter(Consultant.user_id == user_id).first()

    @staticmethod
    def slug_taken(db: Session, slug: str, exclude_id: Optional[str] = None) -> bool:
        query = db.query(Consultant.id).filter(Consultant.slug == slug)
        if exclude_id:
            query = query.filter(Consultant.id != exclude_id)
        return query.first() is not None

    @staticmethod
    def list_packages(db: Session, consultant_id: Optional[str] = None) -> list[Package]:
        query = db.query(Package)
        if consultant_id:
            query = query.filter(Package.consultant_id == consultant_id)
        return query.order_by(Package.is_featured.desc(), Package.price.asc()).all()

    @staticmethod
    def get_package(db: Session, package_id: str) -> Optional[Package]:
        return db.get(Package, package_id)

    @staticmethod
    def save(db: Session, obj):
        db.add(obj)
        db.commit()
        db.refresh(obj)
        return obj

    @staticmethod
    def delete(db: Session, obj) -> None:
        db.delete(obj)
        db.commit()

    @staticmethod
    def get_purchase(db: Session, purchase_id: str) -> Optional[Purchase]:
        return (
            db.query(Purchase)
            .options(joinedload(Purchase.package), joinedload(Purchase.consultant))
            .filter(Purchase.id == purchase_id)
            .first()
        )

    @staticmethod
    def find_purchase_for_checkout(
        db: Session,
        purchase_id: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> Optional[Purchase]:
        if purchase_id:
            purchase = db.get(Purchase, purchase_id)
            if purchase:
                return purchase
        if session_id:
            return db.query(Purchase).filter(Purchase.checkout_session_id == session_id).first()
        return None
