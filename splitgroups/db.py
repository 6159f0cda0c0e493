from sqlmodel import SQLModel, create_engine, Session
from splitgroups.config import DATABASE_URL, SQL_ECHO

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, echo=SQL_ECHO, connect_args=connect_args)

def init_db(bind=None):
    # Import models so SQLModel.metadata includes them
    import splitgroups.models  # noqa: F401
    SQLModel.metadata.create_all(bind or engine)

def get_session():
    with Session(engine) as session:
        yield session
