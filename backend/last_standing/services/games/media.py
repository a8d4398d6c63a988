"""Host-triggered sounds, media overlays and phase videos.

These fields are ephemeral presentation triggers: the host sets them,
clients render them and then clear them. They never affect game rules.
Phase videos resolve per game first, then from the server-wide defaults.
"""

from flask import current_app
from sqlalchemy.exc import IntegrityError

from last_standing import db
from last_standing.models import GlobalSettings
from . import validation
from .errors import Conflict, ValidationError
from .notifier import EventType, get_notifier
from .store import lock_game, require_host, transaction

VIDEO_FIELDS = {
    'elimination': 'elimination_video_url',
    'survivor': 'survivor_video_url',
    'redemption': 'redemption_video_url',
}

DEFAULT_VIDEOS = 'default_videos'


def _url(value) -> str:
    value = validation.required(value, 'Media URL')
    if not value.startswith(('http://', 'https://')):
        raise ValidationError('Must be a valid URL')
    return value


def _update(game_code, host_name, action, **fields) -> dict:
    with transaction():
        game = lock_game(game_code)
        if action:
            require_host(game, host_name, action)
        for key, value in fields.items():
            setattr(game, key, value)
        code = game.code
    current_app.logger.info(f"[media] game={code} {fields}")
    get_notifier().broadcast(code, EventType.STATE_CHANGED, {'reason': 'media', **fields})
    return {'success': True}


def play_sound(game_code, host_name, sound_id) -> dict:
    sound_id = validation.required(sound_id, 'Sound ID')
    return _update(game_code, host_name, 'play sounds', sound_id=sound_id, media_url=None)


def clear_sound(game_code) -> dict:
    return _update(game_code, None, None, sound_id=None)


def show_media(game_code, host_name, media_url) -> dict:
    return _update(game_code, host_name, 'show media', media_url=_url(media_url), sound_id=None)


def hide_media(game_code, host_name) -> dict:
    return _update(game_code, host_name, 'hide media', media_url=None)


def player_hide_media(game_code) -> dict:
    return _update(game_code, None, None, media_url=None)


def _video_field(video_type) -> str:
    field = VIDEO_FIELDS.get(video_type)
    if not field:
        raise ValidationError('Invalid video type')
    return field


def set_sequence_video(game_code, host_name, video_type, url) -> dict:
    field = _video_field(video_type)
    return _update(game_code, host_name, 'set phase videos', **{field: _url(url) if url else None})


def _default_videos():
    return GlobalSettings.query.filter_by(setting_type=DEFAULT_VIDEOS).first()


def get_global_videos() -> dict:
    settings = _default_videos()
    if not settings:
        return {field: None for field in VIDEO_FIELDS.values()}
    return {field: getattr(settings, field) for field in VIDEO_FIELDS.values()}


def set_global_video(video_type, url) -> dict:
    """Set (or clear, with an empty url) one server-wide default phase video."""
    field = _video_field(video_type)
    value = _url(url) if url else None
    with transaction():
        settings = (
            GlobalSettings.query.filter_by(setting_type=DEFAULT_VIDEOS)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if not settings:
            settings = GlobalSettings(setting_type=DEFAULT_VIDEOS)
            db.session.add(settings)
        setattr(settings, field, value)
        try:
            db.session.flush()
        except IntegrityError:
            raise Conflict('Global settings were changed concurrently, please try again.')
    current_app.logger.info(f"[global-video] {field}={value}")
    return {'success': True}


def phase_videos(game) -> dict:
    """Video URL per phase: the game's own, else the server-wide default."""
    defaults = get_global_videos()
    return {
        video_type: getattr(game, field) or defaults[field]
        for video_type, field in VIDEO_FIELDS.items()
    }
