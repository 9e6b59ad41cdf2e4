import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field
from bson import ObjectId
from bson.errors import InvalidId
from pymongo.errors import DuplicateKeyError

import database
from auth import COOKIE_MAX_AGE, COOKIE_NAME, check_login, create_access_token, hash_password
from config import settings
from database import COMMENTS, DONATIONS, USERS, VOLUNTEERS, create_document, get_collection, get_documents
from errors import AuthError, NotFoundError, ValidationError, register_error_handlers
from leaderboard import add_top_donor, fetch_leaderboard, recompute_leaderboard
from logging_config import setup_logging
from schemas import Comment, Donation, User, Volunteer

logger = logging.getLogger(__name__)

router = APIRouter()

# -------------------------
# Utility helpers
# -------------------------

def oid(id_str: str) -> ObjectId:
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        raise ValidationError("Invalid id format")

def to_public(doc: dict) -> dict:
    d = {**doc}
    _id = d.pop("_id", None)
    if _id is not None:
        d["id"] = str(_id)
    d.pop("password_hash", None)
    return d

def set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(COOKIE_NAME, token, max_age=COOKIE_MAX_AGE, httponly=True)

# -------------------------
# Auth: registration and login
# -------------------------
class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str

class LoginRequest(BaseModel):
    email: str
    password: str

@router.post("/register", status_code=201)
def register(payload: RegisterRequest, response: Response):
    user = User(name=payload.name, email=payload.email, password_hash=hash_password(payload.password))
    try:
        create_document(USERS, user)
    except DuplicateKeyError:
        raise ValidationError("User already exists")
    logger.info("Registered user %s", payload.email)
    set_auth_cookie(response, create_access_token(payload.email))
    return {"success": True, "message": "User registered successfully"}

@router.post("/login")
def login(payload: LoginRequest, response: Response):
    user = get_collection(USERS).find_one({"email": payload.email})
    # Same answer for unknown email and wrong password
    stored_hash = user.get("password_hash") if user else None
    if not check_login(payload.password, stored_hash):
        logger.info("Failed login for %s", payload.email)
        raise AuthError("Invalid email or password")
    token = create_access_token(user["email"])
    set_auth_cookie(response, token)
    return {"success": True, "message": "Login successful", "token": token}

# -------------------------
# Donations
# -------------------------
class DonationBody(BaseModel):
    image: str
    category: str
    title: str
    amount: float = Field(..., ge=0, allow_inf_nan=False)
    description: str

class DonationCreate(DonationBody):
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(None, alias="userId")

@router.post("/donations", status_code=201)
def create_donation(payload: DonationCreate):
    donation = Donation(**payload.model_dump(), timestamp=datetime.now(timezone.utc))
    donation_id = create_document(DONATIONS, donation)
    return {"success": True, "message": "Donation created successfully", "donationId": donation_id}

@router.get("/donations")
def list_donations():
    docs = get_documents(DONATIONS)
    return {"success": True, "donations": [to_public(d) for d in docs]}

@router.get("/donations/{donation_id}")
def get_donation(donation_id: str):
    doc = get_collection(DONATIONS).find_one({"_id": oid(donation_id)})
    if not doc:
        raise NotFoundError("Donation not found")
    return {"success": True, "donation": to_public(doc)}

@router.put("/donations/{donation_id}")
def update_donation(donation_id: str, payload: DonationBody):
    # Only the listing fields are overwritten; userId and unknown fields stay.
    result = get_collection(DONATIONS).update_one(
        {"_id": oid(donation_id)},
        {"$set": {**payload.model_dump(), "timestamp": datetime.now(timezone.utc)}},
    )
    if result.matched_count == 0:
        raise NotFoundError("Donation not found")
    return {"success": True, "message": "Donation updated successfully"}

@router.delete("/donations/{donation_id}")
def delete_donation(donation_id: str):
    result = get_collection(DONATIONS).delete_one({"_id": oid(donation_id)})
    if result.deleted_count == 0:
        raise NotFoundError("Donation not found")
    return {"success": True, "message": "Donation deleted successfully"}

# -------------------------
# Leaderboard
# -------------------------
class TopDonorCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId")
    total_amount: float = Field(..., alias="totalAmount", ge=0, allow_inf_nan=False)

@router.get("/leaderboard")
def get_leaderboard():
    leaderboard = recompute_leaderboard()
    return {
        "success": True,
        "message": "Leaderboard data retrieved successfully",
        "leaderboard": leaderboard,
    }

@router.post("/top-donors", status_code=201)
def create_top_donor(payload: TopDonorCreate):
    entry = add_top_donor(payload.user_id, payload.total_amount)
    return {
        "success": True,
        "message": "Top donor added successfully",
        "topDonor": entry,
        "topDonors": fetch_leaderboard(),
    }

# -------------------------
# Comments and volunteers
# -------------------------
class CommentCreate(BaseModel):
    text: str

class VolunteerCreate(BaseModel):
    name: str
    email: str
    phone: str
    location: str

@router.post("/comments", status_code=201)
def create_comment(payload: CommentCreate):
    comment_id = create_document(COMMENTS, Comment(text=payload.text))
    return {"success": True, "message": "Comment posted successfully", "commentId": comment_id}

@router.get("/comments")
def list_comments():
    docs = get_documents(COMMENTS)
    return {"success": True, "comments": [to_public(d) for d in docs]}

@router.post("/volunteers", status_code=201)
def create_volunteer(payload: VolunteerCreate):
    volunteer_id = create_document(VOLUNTEERS, Volunteer(**payload.model_dump()))
    return {"success": True, "message": "Volunteer signed up successfully", "volunteerId": volunteer_id}

@router.get("/volunteers")
def list_volunteers():
    docs = get_documents(VOLUNTEERS)
    return {"success": True, "volunteers": [to_public(d) for d in docs]}

# -------------------------
# App
# -------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Tests hand in their own client before the app starts.
    if database.db is None:
        database.init_db()
    try:
        yield
    finally:
        database.close_db()

def create_app() -> FastAPI:
    setup_logging(settings.log_level)

    app = FastAPI(title=settings.project_name, version=settings.api_version, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)
    app.include_router(router, prefix="/api/v1")

    @app.get("/")
    def root():
        return {"message": "Server is running smoothly", "timestamp": datetime.now(timezone.utc)}

    return app

app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
