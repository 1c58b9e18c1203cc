"""
Script to create an agency and its owner with a password for local testing.
"""

import argparse
import asyncio

from sqlmodel import select

from agency_portal.core.auth import hash_password
from agency_portal.core.database import init_db, session_scope
from agency_portal.core.permissions import default_permissions
from agency_portal.models.agency import Agency
from agency_portal.models.team import TeamMember
from agency_portal_shared.schemas.common import TeamRole


async def create_owner(agency_slug: str, agency_name: str, email: str, password: str, create_tables: bool):
    if create_tables:
        await init_db()

    async with session_scope() as session:
        # 1. Ensure the agency exists
        result = await session.execute(select(Agency).where(Agency.slug == agency_slug))
        agency = result.scalar_one_or_none()

        if not agency:
            agency = Agency(name=agency_name, slug=agency_slug)
            session.add(agency)
            await session.flush()
            print(f"Created agency '{agency_slug}'.")

        # 2. Ensure the owner exists
        result = await session.execute(
            select(TeamMember).where(TeamMember.agency_id == agency.id, TeamMember.email == email)
        )
        member = result.scalar_one_or_none()

        if not member:
            member = TeamMember(
                agency_id=agency.id,
                email=email,
                name=email.split("@")[0],
                role=TeamRole.OWNER.value,
                status="active",
                permissions=default_permissions(TeamRole.OWNER).model_dump(mode="json"),
                password_hash=hash_password(password),
            )
            session.add(member)
            print(f"Added {email} as owner of '{agency_slug}'.")
        else:
            print(f"Team member {email} already exists.")

    print("Done.")


def main() -> None:
    parser = argparse.ArgumentParser(description="Create a local agency owner.")
    parser.add_argument("--agency-slug", default="demo", help="Agency slug (routing key)")
    parser.add_argument("--agency-name", default="Demo Agency", help="Agency display name")
    parser.add_argument("--email", required=True, help="Email address for the owner")
    parser.add_argument("--password", required=True, help="Password for the owner")
    parser.add_argument("--create-tables", action="store_true", help="Create tables first (dev only)")

    args = parser.parse_args()

    asyncio.run(
        create_owner(args.agency_slug, args.agency_name, args.email, args.password, args.create_tables)
    )


if __name__ == "__main__":
    main()
