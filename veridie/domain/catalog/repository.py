"""Catalog repository - Database operations for mentor services"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Service


class ServiceRepository:
    @staticmethod
    def list_for_mentor(db: Session, mentor_id: str) -> list[Service]:
        return (
            db.query(Service)
            .filter(Service.mentor_id == mentor_id)
            .order_by(Service.price.asc(), Service.created_at.asc())
            .all()
        )

    @staticmethod
    def get(db: Session, service_id: str) -> Optional[Service]:
        return db.get(Service, service_id)

    @staticmethod
    def create(db: Session, **data) -> Service:
        service = Service(**data)
        db.add(service)
        db.commit()
        db.refresh(service)
        return service

    @staticmethod
    def update(db: Session, service: Service, **updates) -> Service:
        for key, value in updates.items():
            if value is not None and hasattr(service, key):
                setattr(service, key, value)
        db.commit()
        db.refresh(service)
        return service

    @staticmethod
    def delete(db: Session, service: Service) -> None:
        db.delete(service)
        db.commit()
