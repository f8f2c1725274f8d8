from oxrooms.client.session import SessionClient, SessionView, Phase, Role  # noqa: F401
from oxrooms.client.local import LocalGame  # noqa: F401
from oxrooms.client.scoreboard import ScoreBoard, GameRecord  # noqa: F401
from oxrooms.client.remote import RemoteRoomStore  # noqa: F401
