from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from werkzeug.exceptions import HTTPException
import logging
import click
from runvault.config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(getattr(logging, str(flask_app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO))

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=[flask_app.config.get('FRONTEND_URL', 'http://localhost:5173')])

    # Engine services are built once and live as long as the app
    from runvault.services.runs import RunLifecycleManager
    from runvault.services.leaderboard import LeaderboardAggregator
    flask_app.extensions['run_lifecycle'] = RunLifecycleManager(db.session)
    flask_app.extensions['leaderboard'] = LeaderboardAggregator(db.session)

    # Import and register blueprints here
    from runvault.routes import main
    flask_app.register_blueprint(main)

    from runvault.api.auth import auth
    flask_app.register_blueprint(auth, url_prefix='/api/auth')

    from runvault.api.gamesave import gamesave
    flask_app.register_blueprint(gamesave, url_prefix='/api/gamesave')

    from runvault.api.leaderboard import leaderboard
    flask_app.register_blueprint(leaderboard, url_prefix='/api/leaderboard')

    _register_error_handlers(flask_app)

    # Flask-Login user loader
    from runvault.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, user_id)

    @login_manager.unauthorized_handler
    def unauthorized():
        # Rendered by the RunVaultError handler before any service is called
        from runvault.errors import Unauthorized
        raise Unauthorized()

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from runvault.models import User
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            # Seed users
            users = ['testuser1', 'testuser2', 'testuser3']
            for u in users:
                user = User(username=u, email=f'{u}@example.com')
                user.set_password('password')
                db.session.add(user)

            db.session.commit()
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app


def _register_error_handlers(flask_app):
    from runvault.errors import RunVaultError

    @flask_app.errorhandler(RunVaultError)
    def handle_runvault_error(exc):
        if exc.status_code >= 500:
            flask_app.logger.warning(f"[error] status={exc.status_code} message={exc.message}")
        return jsonify(exc.to_dict()), exc.status_code

    @flask_app.errorhandler(HTTPException)
    def handle_http_error(exc):
        if exc.code == 404:
            return jsonify({'error': 'Not found'}), 404
        return jsonify({'error': exc.description or exc.name}), exc.code

    @flask_app.errorhandler(Exception)
    def handle_unexpected_error(exc):
        flask_app.logger.exception(f"[error] unhandled {type(exc).__name__}")
        return jsonify({'error': 'Internal server error'}), 500
