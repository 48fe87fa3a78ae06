from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
socketio = SocketIO(async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('ALLOWED_ORIGINS') or []

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # One service container per app; routes reach it through get_services()
    from trivia.services.game import init_services
    init_services(flask_app, socketio)

    from trivia.errors import register_error_handlers
    register_error_handlers(flask_app)

    # Import and register blueprints here
    from trivia.main import main
    flask_app.register_blueprint(main)

    from trivia.api.game import game
    flask_app.register_blueprint(game, url_prefix='/api/game')

    from trivia.api.scores import scores
    flask_app.register_blueprint(scores, url_prefix='/api/scores')

    from trivia.api.buzzer import buzzer
    flask_app.register_blueprint(buzzer, url_prefix='/api/buzzer')

    # Register Socket.IO event handlers
    from trivia.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    # Flask-Login user loader
    from trivia.models import Account

    @login_manager.user_loader
    def load_user(uid):
        return db.session.get(Account, uid)

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            services = flask_app.extensions['trivia']
            services.states.ensure()
            _create_user('admin@trivia.local', 'password', 'Quizmaster', is_admin=True)
            for team in ['alpha', 'beta', 'gamma']:
                _create_user(f'{team}@trivia.local', 'password', f'Team {team.title()}')

            db.session.commit()
            print('Database has been reset and seeded!')

    @click.command('create-user')
    @click.argument('email')
    @click.argument('password')
    @click.argument('team_name')
    @click.option('--admin', is_flag=True, default=False, help='Create an admin account.')
    def create_user_command(email, password, team_name, admin):
        """Creates a predefined login together with its profile."""
        with flask_app.app_context():
            account = _create_user(email, password, team_name, is_admin=admin)
            db.session.commit()
            print(f'Created {"admin" if admin else "team"} {team_name} uid={account.uid}')

    @click.command('init-game')
    def init_game_command():
        """Creates the shared game state document if it does not exist."""
        with flask_app.app_context():
            state = flask_app.extensions['trivia'].states.ensure()
            print(f'Game state ready (round {state.current_round}, question {state.current_question})')

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(create_user_command)
    flask_app.cli.add_command(init_game_command)

    return flask_app


def _create_user(email, password, team_name, is_admin=False):
    from trivia.models import Account, UserProfile

    account = Account(email=email.lower(), is_admin=is_admin)
    account.set_password(password)
    db.session.add(account)
    db.session.flush()
    db.session.add(UserProfile(
        uid=account.uid,
        email=account.email,
        team_name=team_name,
        is_admin=is_admin,
    ))
    return account
