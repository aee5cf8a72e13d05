"""
Rows the application expects to exist: the def dummy and an optional bootstrap admin.
"""
import logging
from typing import Optional

from sqlmodel import Session, func, select

from shuffleclub import config
from shuffleclub.models.player import Player
from shuffleclub.services.match_service import get_def_player
from shuffleclub.utils.auth import hash_password

logger = logging.getLogger(__name__)


def ensure_def_player(session: Session) -> Player:
    """Create the def dummy (inactive, hidden from rankings) when it is missing."""
    existing = get_def_player(session)
    if existing is not None:
        if not existing.is_dummy:
            existing.is_dummy = True
            session.add(existing)
            session.commit()
        return existing
    dummy = Player(
        handle_name=config.DEF_HANDLE_NAME,
        full_name="Default (walkover)",
        is_dummy=True,
        is_active=False,
        ranking_points=0,
    )
    session.add(dummy)
    session.commit()
    session.refresh(dummy)
    logger.info("Created def player %s", dummy.id)
    return dummy


def ensure_bootstrap_admin(session: Session) -> Optional[Player]:
    """Create or promote BOOTSTRAP_ADMIN_HANDLE when both bootstrap variables are set."""
    handle = config.BOOTSTRAP_ADMIN_HANDLE
    password = config.BOOTSTRAP_ADMIN_PASSWORD
    if not handle or not password:
        return None
    player = session.exec(select(Player).where(func.lower(Player.handle_name) == handle.lower())).first()
    if player is None:
        player = Player(
            handle_name=handle,
            password_hash=hash_password(password),
            ranking_points=config.RATING_DEFAULT,
            handicap=config.HANDICAP_DEFAULT,
        )
        logger.info("Created bootstrap admin %s", handle)
    elif not player.password_hash:
        player.password_hash = hash_password(password)
    player.is_admin = True
    player.is_active = True
    session.add(player)
    session.commit()
    session.refresh(player)
    return player
