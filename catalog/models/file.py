import uuid

from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func
from catalog.database import Base


class File(Base):
    """Uploaded image. Rows are written by the upload service; the catalog only reads them."""
    __tablename__ = "files"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    uri = Column(String(1024), nullable=False)
    thumbnail_uri = Column(String(1024), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<File(id='{self.id}', uri='{self.uri}')>"
