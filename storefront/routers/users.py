import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status
from sqlalchemy.orm import Session

from storefront.database import get_db
from storefront.models import Order, User
from storefront.pagination import paginate, paginated_response
from storefront.rate_limit import RELAXED, STRICT, RateLimiter
from storefront.schemas import LoginRequest, OrderOut, ProfileUpdate, RegisterRequest, UserOut
from storefront.security import create_access_token, get_current_user, get_password_hash, verify_password
from storefront.storage import ObjectStorage, get_storage, public_url, save_upload
from storefront.validation import has_min_length, is_valid_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])


def _auth_response(user: User, message: str) -> dict:
    return {
        "success": True,
        "user": UserOut.model_validate(user),
        "token": create_access_token(user),
        "message": message,
    }


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
    dependencies=[Depends(RateLimiter(STRICT))],
)
def register_user(request: RegisterRequest, db: Session = Depends(get_db)):
    if not is_valid_email(request.email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid email format")
    if not request.password or len(request.password) < 6:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Password must be at least 6 characters")
    if not has_min_length(request.name):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Name must be at least 2 characters")

    email = request.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User with this email already exists")

    user = User(
        email=email,
        name=request.name.strip(),
        phone=request.phone,
        password_hash=get_password_hash(request.password),
        role="customer",
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered user %s", user.id)
    return _auth_response(user, "User registered successfully")


@router.post("/login", summary="Log in and get an access token", dependencies=[Depends(RateLimiter(STRICT))])
def login(request: LoginRequest, db: Session = Depends(get_db)):
    if not is_valid_email(request.email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid email format")
    if not request.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Password is required")

    user = db.query(User).filter(User.email == request.email.lower()).first()
    if not user or not verify_password(request.password, user.password_hash):
        logger.info("Failed login for %s", request.email.lower())
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    return _auth_response(user, "Login successful")


@router.get("/me", summary="Current user profile")
def read_me(user: User = Depends(get_current_user)):
    return {"success": True, "data": UserOut.model_validate(user)}


@router.put("/me", summary="Update the current user profile")
def update_me(data: ProfileUpdate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    if data.name is not None and not has_min_length(data.name):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Name must be at least 2 characters")
    if data.name is not None:
        user.name = data.name.strip()
    if data.phone is not None:
        user.phone = data.phone or None
    if data.address is not None:
        user.address = data.address or None
    db.commit()
    db.refresh(user)
    return {"success": True, "data": UserOut.model_validate(user), "message": "Profile updated successfully"}


@router.get("/me/orders", summary="Order history of the current user")
def my_orders(
    cursor: Optional[str] = None,
    limit: Optional[int] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    page = paginate(db.query(Order).filter(Order.user_id == user.id), Order, cursor, limit)
    return paginated_response(page, [OrderOut.from_order(o) for o in page.items])


@router.post("/me/avatar", summary="Upload an avatar", dependencies=[Depends(RateLimiter(RELAXED))])
async def upload_avatar(
    request: Request,
    file: UploadFile = File(...),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
):
    stored = await save_upload(storage, file, folder="avatars")
    user.avatar_url = public_url(request.base_url, stored.key)
    db.commit()
    return {"success": True, "data": {"avatarUrl": user.avatar_url}}
