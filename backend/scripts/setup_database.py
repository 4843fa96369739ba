"""Create the database tables and a default admin account.

Prints a bearer token for the admin so the API can be exercised locally
before the account service is wired up.

Usage:
    pip install -e .
    python backend/scripts/setup_database.py
"""

from sqlmodel import Session, select

from vanguard_desk.core.database import engine, init_db
from vanguard_desk.core.security import create_access_token
from vanguard_desk.models.user import Role, User

init_db()
print("Tables created")

with Session(engine) as session:
    admin = session.exec(select(User).where(User.username == "admin")).first()
    if not admin:
        admin = User(username="admin", email="admin@vanguardmachinery.com", role=Role.ADMIN)
        session.add(admin)
        session.commit()
        session.refresh(admin)
        print("Default admin user created")

    print(f"\nAdmin token (id={admin.id}):")
    print(f"  {create_access_token(admin.id)}")
