"""
Service layer exports.
"""
from dataclasses import dataclass

from kanban.database import Database

from .board_service import BoardService
from .ordering import OrderingService
from .ownership import OwnershipResolver
from .token_service import TokenService
from .transfer_service import TransferService
from .user_service import UserService


@dataclass
class Services:
    """Every service bound to one storage handle."""
    db: Database
    users: UserService
    tokens: TokenService
    ownership: OwnershipResolver
    ordering: OrderingService
    board: BoardService
    transfer: TransferService


def build_services(db: Database) -> Services:
    ordering = OrderingService(db)
    return Services(
        db=db,
        users=UserService(db),
        tokens=TokenService(db),
        ownership=OwnershipResolver(db),
        ordering=ordering,
        board=BoardService(db, ordering),
        transfer=TransferService(db),
    )


__all__ = [
    "Services",
    "build_services",
    "BoardService",
    "OrderingService",
    "OwnershipResolver",
    "TokenService",
    "TransferService",
    "UserService",
]
