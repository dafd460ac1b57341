"""Share link issuing and resolution for saved carts"""

import asyncio
import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from cart_engagement.core.config import Settings, settings as default_settings
from cart_engagement.core.exceptions import (
    AuthorizationError,
    InvalidSharePasswordError,
    NotFoundError,
    ShareNotFoundError,
)
from cart_engagement.core.security import SecurityUtils
from cart_engagement.schemas.cart import SnapshotUpdate
from cart_engagement.schemas.share import AccessLevel, ShareGrant, SharedCartView
from cart_engagement.services.snapshot_store import CartSnapshotStore
from cart_engagement.utils.helpers import generate_id, utcnow

logger = logging.getLogger(__name__)

EDIT_LEVELS = {AccessLevel.EDIT, AccessLevel.ADMIN}

class ShareTokenIssuer:
    """Issues and checks capability tokens over saved carts"""
    
    def __init__(
        self,
        store: CartSnapshotStore,
        settings: Settings = default_settings,
        clock: Callable[[], datetime] = utcnow
    ):
        self.store = store
        self.settings = settings
        self.clock = clock
        self._grants: Dict[str, ShareGrant] = {}
        self._grant_ids_by_token: Dict[str, str] = {}
        self._lock = asyncio.Lock()
        
    async def issue(
        self,
        snapshot_id: str,
        issuer_id: str,
        access_level: AccessLevel = AccessLevel.VIEW,
        expires_in_hours: Optional[float] = None,
        password: Optional[str] = None,
        allow_anonymous: bool = True,
        custom_message: Optional[str] = None,
        recipients: Optional[List[str]] = None
    ) -> ShareGrant:
        """
        Create a share grant for a saved cart
        
        The snapshot is not looked up here; a grant for a cart deleted
        later simply fails to resolve.
        """
        now = self.clock()
        password_hash = SecurityUtils.hash_password(password) if password else None
        
        async with self._lock:
            token = self._new_token()
            grant = ShareGrant(
                id=generate_id("share"),
                share_token=token,
                snapshot_id=snapshot_id,
                issued_by=issuer_id,
                recipients=list(recipients) if recipients is not None else None,
                access_level=AccessLevel(access_level),
                expires_at=now + timedelta(hours=expires_in_hours) if expires_in_hours else None,
                password_hash=password_hash,
                is_password_protected=password_hash is not None,
                allow_anonymous=allow_anonymous,
                custom_message=custom_message,
                created_at=now
            )
            self._grants[grant.id] = grant
            self._grant_ids_by_token[token] = grant.id
            
        logger.info(
            f"Issued {grant.access_level.value} share {grant.id} for cart {snapshot_id} "
            f"by {issuer_id}"
        )
        return grant.model_copy(deep=True)
        
    async def resolve(
        self,
        token: str,
        password: Optional[str] = None,
        caller_id: Optional[str] = None
    ) -> SharedCartView:
        """Check a token and return the shared cart"""
        async with self._lock:
            grant = self._check(token, password, caller_id)
            
            try:
                snapshot = await self.store.get(grant.snapshot_id, touch=True)
            except NotFoundError:
                logger.info(f"Share {grant.id} points at deleted cart {grant.snapshot_id}")
                raise ShareNotFoundError()
                
            grant.access_count += 1
            grant.last_accessed_at = self.clock()
            return SharedCartView(grant=grant.model_copy(deep=True), snapshot=snapshot)
            
    async def update_shared(
        self,
        token: str,
        updates: SnapshotUpdate,
        password: Optional[str] = None,
        caller_id: Optional[str] = None
    ) -> SharedCartView:
        """Edit a shared cart through an edit or admin grant"""
        async with self._lock:
            grant = self._check(token, password, caller_id)
            if grant.access_level not in EDIT_LEVELS:
                raise AuthorizationError("This share link is view-only")
                
            try:
                snapshot = await self.store.update(grant.snapshot_id, updates)
            except NotFoundError:
                raise ShareNotFoundError()
                
            grant.access_count += 1
            grant.last_accessed_at = self.clock()
            logger.info(f"Cart {grant.snapshot_id} edited through share {grant.id}")
            return SharedCartView(grant=grant.model_copy(deep=True), snapshot=snapshot)
            
    async def list_grants(self, snapshot_id: str) -> List[ShareGrant]:
        """Unexpired grants for a saved cart, oldest first"""
        now = self.clock()
        async with self._lock:
            return [
                grant.model_copy(deep=True)
                for grant in self._grants.values()
                if grant.snapshot_id == snapshot_id and not grant.is_expired(now)
            ]
            
    def active_count(self) -> int:
        now = self.clock()
        return sum(1 for grant in self._grants.values() if not grant.is_expired(now))
        
    async def revoke(self, grant_id: str) -> bool:
        """Delete a grant; revoking twice returns False"""
        async with self._lock:
            grant = self._grants.pop(grant_id, None)
            if grant is None:
                return False
            self._grant_ids_by_token.pop(grant.share_token, None)
            
        logger.info(f"Revoked share {grant_id}")
        return True
        
    def _check(
        self,
        token: str,
        password: Optional[str],
        caller_id: Optional[str]
    ) -> ShareGrant:
        grant_id = self._grant_ids_by_token.get(token)
        grant = self._grants.get(grant_id) if grant_id else None
        
        # Expired grants are indistinguishable from unknown tokens
        if grant is None or grant.is_expired(self.clock()):
            raise ShareNotFoundError()
            
        if grant.password_hash is not None:
            if not password or not SecurityUtils.verify_password(password, grant.password_hash):
                raise InvalidSharePasswordError()
                
        if not grant.allow_anonymous:
            if not caller_id or caller_id not in (grant.recipients or []):
                raise AuthorizationError("You do not have access to this cart")
                
        return grant
        
    def _new_token(self) -> str:
        while True:
            token = secrets.token_urlsafe(self.settings.SHARE_TOKEN_BYTES)
            if token not in self._grant_ids_by_token:
                return token
