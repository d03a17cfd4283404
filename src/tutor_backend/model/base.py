from uuid import uuid4
from sqlalchemy import JSON, MetaData
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base

metadata = MetaData()
Base = declarative_base(metadata=metadata)

# JSONB on PostgreSQL, plain JSON elsewhere (tests run on SQLite)
JSONList = JSON().with_variant(JSONB(), "postgresql")

def new_id() -> str:
    return str(uuid4())
