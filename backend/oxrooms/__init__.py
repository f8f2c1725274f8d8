from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from oxrooms.config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
socketio = SocketIO(async_mode=None)

from oxrooms.services.rooms.store import RoomStore  # noqa: E402

room_store = RoomStore()


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS', [])

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    room_store.init_app(flask_app)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from oxrooms.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api')

    # Register Socket.IO event handlers
    from oxrooms.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    from oxrooms.models import Participant

    @login_manager.user_loader
    def load_participant(participant_id):
        return db.session.get(Participant, participant_id)

    @login_manager.request_loader
    def load_participant_from_header(req):
        # Authorization: Bearer <participant id>:<token>
        header = req.headers.get('Authorization', '')
        if not header.startswith('Bearer '):
            return None
        participant_id, _, token = header[len('Bearer '):].partition(':')
        return room_store.authenticate(participant_id, token)

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the database tables."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            click.echo('Database has been reset!')

    @click.command('rooms-expire')
    def rooms_expire_command():
        """Deletes expired rooms and orphaned participants."""
        with flask_app.app_context():
            removed = room_store.expire_rooms()
            click.echo(f'Expired {removed} room(s).')

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(rooms_expire_command)

    return flask_app
