import argparse
import logging
import pathlib
import sys

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from src.app.config import get_settings
from src.app.context import build_context
from src.app.domain.errors import RecipeAppError
from src.app.services.user_service import UserService


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Create admin accounts, or promote existing accounts to admin. Safe to re-run."
    )
    parser.add_argument("email", nargs="+", help="Admin email address(es)")
    parser.add_argument("--password", help="Initial password for accounts that do not exist yet")
    parser.add_argument("--name", default="Recipe Admin", help="Display name for new accounts")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")

    ctx = build_context(get_settings())
    service = UserService(ctx.users, ctx.recipes, ctx.auth)

    failures = 0
    for email in args.email:
        try:
            profile, changed = service.ensure_admin(email, args.password, args.name)
        except RecipeAppError as exc:
            print(f"FAILED  {email}: {exc}")
            failures += 1
            continue
        state = "updated" if changed else "already admin"
        print(f"OK      {profile.email} ({state}) id={profile.id}")

    if failures == 0 and args.password:
        print("Log in and change the initial passwords.")
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
