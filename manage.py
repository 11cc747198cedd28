from datetime import date, timedelta

import click
from flask.cli import FlaskGroup
from flask_migrate import Migrate

from boondit.app import create_app, db, seed_categories_safely
from boondit.models import User
from boondit.services.analytics import aggregate_daily_stats
from boondit.services.creations import clear_emoji_icons
from boondit.shared.time import utcnow_naive


migrate = Migrate()


def create_boondit_app():
    app = create_app()
    migrate.init_app(app, db)
    return app


cli = FlaskGroup(create_app=create_boondit_app)


@cli.command("seed-categories")
def seed_categories():
    """Insert the default categories that are missing."""
    added = seed_categories_safely()
    click.echo(f"Added {added} categories")


@cli.command("aggregate-stats")
@click.option(
    "--date",
    "day",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="UTC day to roll up (default: yesterday)",
)
def aggregate_stats(day):
    """Roll raw clicks and installs up into daily stats."""
    target: date = day.date() if day else utcnow_naive().date() - timedelta(days=1)
    count = aggregate_daily_stats(target)
    click.echo(f"Aggregated {count} creations for {target.isoformat()}")


@cli.command("remove-emoji-categories")
def remove_emoji_categories():
    for name in clear_emoji_icons():
        click.echo(f"Removed emoji from: {name}")
    click.echo("Done")


@cli.command("promote-admin")
@click.option("--email", required=True)
def promote_admin(email: str):
    user = User.query.filter(db.func.lower(User.email) == email.strip().lower()).one_or_none()
    if not user:
        click.echo("Not found", err=True)
        raise SystemExit(1)
    user.is_admin = True
    db.session.commit()
    click.echo(f"{user.email} is now an admin")


if __name__ == "__main__":
    cli()
