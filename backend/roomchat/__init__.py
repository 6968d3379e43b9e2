from flask import Flask, jsonify
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


def _allowed_origins(config):
    return [o.strip() for o in (config.get('CLIENT_URL') or '').split(',') if o.strip()]


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))
    allowed_origins = _allowed_origins(flask_app.config)

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # One chat service per process; handlers reach it via current_app.extensions
    from roomchat.chat import ChatService
    from roomchat.chat.store import SqlAlchemyMessageStore
    from roomchat.socketio_events import deliver_event
    flask_app.extensions['chat'] = ChatService(
        SqlAlchemyMessageStore(),
        deliver_event,
        max_length=flask_app.config.get('MESSAGE_MAX_LENGTH', 2000),
    )

    from roomchat.main import main
    flask_app.register_blueprint(main)

    from roomchat.api.messages import messages
    flask_app.register_blueprint(messages, url_prefix='/api/messages')

    # Register Socket.IO event handlers on the configured namespace
    from roomchat.socketio_events import register_socketio_handlers
    register_socketio_handlers(flask_app.config.get('CHAT_NAMESPACE', '/ws'))

    # Flask-Login user loader
    from roomchat.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Authentication required', 'code': 'unauthorized'}), 401

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            # Seed users
            users = ['testuser1', 'testuser2', 'testuser3']
            for u in users:
                user = User(username=u)
                user.set_password('password')
                db.session.add(user)

            db.session.commit()
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
