"""
Database Schemas for the Donation Platform

Each Pydantic model below describes the documents of one MongoDB collection.
Collection names follow the frontend's naming, not the class names.
"""

from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional

class User(BaseModel):
    """
    Users collection schema
    Collection: "users"
    """
    name: str = Field(..., description="Full name")
    email: str = Field(..., description="Unique email address")
    password_hash: str = Field(..., description="PBKDF2 password hash")

class Donation(BaseModel):
    """
    Donation listings collection schema
    Collection: "donations"
    """
    model_config = ConfigDict(populate_by_name=True)

    image: str = Field(..., description="Image URL")
    category: str = Field(..., description="Listing category")
    title: str = Field(..., description="Listing title")
    amount: float = Field(..., ge=0, allow_inf_nan=False, description="Donation amount")
    description: str = Field(..., description="Listing description")
    user_id: Optional[str] = Field(None, alias="userId", description="Donor identity, if known")
    timestamp: Optional[datetime] = Field(None, description="Created or last edited")

class TopDonor(BaseModel):
    """
    One ranked entry of the leaderboard snapshot
    """
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId", description="Donor identity")
    total_amount: float = Field(..., alias="totalAmount", allow_inf_nan=False, description="Summed donation amount")
    timestamp: datetime = Field(..., description="When the entry was computed")

class LeaderboardSnapshot(BaseModel):
    """
    Top donors collection schema
    Collection: "topDonors" (a single document with _id "current")
    """
    model_config = ConfigDict(populate_by_name=True)

    entries: List[TopDonor] = Field(default_factory=list, description="Ranked donors")
    computed_at: datetime = Field(..., alias="computedAt", description="Computation time")

class Comment(BaseModel):
    """
    Comments collection schema
    Collection: "comments"
    """
    text: str = Field(..., description="Comment text")
    timestamp: Optional[datetime] = Field(None, description="Posted at")

class Volunteer(BaseModel):
    """
    Volunteers collection schema
    Collection: "volunteers"
    """
    name: str = Field(..., description="Volunteer name")
    email: str = Field(..., description="Contact email")
    phone: str = Field(..., description="Contact phone")
    location: str = Field(..., description="Where the volunteer can help")
    timestamp: Optional[datetime] = Field(None, description="Signed up at")
