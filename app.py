import os
import click
from flask import Flask
from config import Config
from extensions import db, login_manager, init_extensions
from errors import register_error_handlers
from logger import configure_app_logging
from models import User


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    if not app.debug and not app.testing:
        app.config.update(
            SESSION_COOKIE_SECURE=True,
            SESSION_COOKIE_HTTPONLY=True,
            REMEMBER_COOKIE_SECURE=True,
            REMEMBER_COOKIE_HTTPONLY=True,
        )

    # ------------------------------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------------------------------
    configure_app_logging(app)

    # ------------------------------------------------------------------------------------------
    # SQLite fallback needs the instance folder
    # ------------------------------------------------------------------------------------------
    if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite:///") and ":memory:" not in app.config["SQLALCHEMY_DATABASE_URI"]:
        os.makedirs(os.path.join(os.path.abspath(os.path.dirname(__file__)), "instance"), exist_ok=True)

    # ------------------------------------------------------------------------------------------
    # Extensions, blueprints, errors
    # ------------------------------------------------------------------------------------------
    init_extensions(app)
    register_blueprints(app)
    register_error_handlers(app)
    register_commands(app)

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @app.route("/healthz")
    def healthz():
        return {"status": "ok"}, 200

    return app


def register_blueprints(app):
    from blueprints.category import bp as category_bp
    from blueprints.cms import bp as cms_bp
    from blueprints.wallet import bp as wallet_bp

    app.register_blueprint(category_bp)
    app.register_blueprint(cms_bp)
    app.register_blueprint(wallet_bp)


# ------------------------------------------------------------------------------------------------
# Manual job runs:  flask --app wsgi calculate-earnings
# ------------------------------------------------------------------------------------------------
def register_commands(app):
    from wallet.earnings import DailyEarningProcessor
    from wallet.withdrawals import WithdrawalProcessor

    @app.cli.command("calculate-earnings")
    def calculate_earnings_command():
        """Credit today's view earnings to creator wallets."""
        processor = DailyEarningProcessor()
        results = processor.run()
        click.echo(f"Credited {len(results)} posts for {processor.today} ({len(processor.errors)} errors)")

    @app.cli.command("reconcile-withdrawals")
    def reconcile_withdrawals_command():
        """Poll PayPal for PROCESSING withdrawals."""
        summary = WithdrawalProcessor.update_withdrawal_statuses()
        click.echo(", ".join(f"{key}={value}" for key, value in summary.items()))

    @app.cli.command("promote-user")
    @click.argument("username")
    @click.option("--creator", is_flag=True, help="Flag the user as a creator instead of an admin.")
    def promote_user_command(username, creator):
        """Make an existing user an admin (or a creator)."""
        user = User.query.filter_by(username=username).first()
        if not user:
            raise click.ClickException(f"No user named {username}")

        if creator:
            user.is_creator = True
        else:
            user.role = "admin"
        db.session.commit()
        click.echo(f"User (id={user.id}, username={username}) is now {'a creator' if creator else 'admin'}.")
