from collections.abc import Callable, Generator

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from kampus.core.security import decode_token
from kampus.db.session import SessionLocal
from kampus.models.user import Permission, User
from kampus.services.assignment_service import AssignmentService

security = HTTPBearer()


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    token = credentials.credentials
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_token(token)
        user_id = payload.get("sub")
        if user_id is None:
            raise credentials_exception
    except JWTError as exc:
        raise credentials_exception from exc

    user = db.get(User, user_id)
    if user is None:
        raise credentials_exception
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is inactive")
    return user


def require_permissions(*permissions: Permission) -> Callable[[User], User]:
    required = frozenset(permissions)

    def permission_checker(current_user: User = Depends(get_current_user)) -> User:
        missing = [permission.value for permission in required if not current_user.has_permission(permission)]
        if missing:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing permission: {', '.join(sorted(missing))}",
            )
        return current_user

    return permission_checker


def get_assignment_service(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> AssignmentService:
    return AssignmentService(db, actor_id=current_user.id)
