from typing import Optional
from pydantic import BaseModel

class ShareDeclaration(BaseModel):
    share_name: str
    path: str
    permitted_user: str

class ShareBlock(BaseModel):
    name: str
    start: int  # index of the [name] line
    end: int    # index one past the last line of the block
    text: str

class SMBShare(BaseModel):
    name: str
    path: str
    comment: Optional[str] = None
    valid_users: Optional[str] = None
    read_only: bool = False
    browsable: bool = True
