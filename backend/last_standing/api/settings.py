from flask import Blueprint, jsonify

from last_standing.api import json_body
from last_standing.services.games import media

settings = Blueprint('settings', __name__)


@settings.route('/global-videos', methods=['GET'])
def get_global_videos():
    return jsonify(media.get_global_videos())


@settings.route('/global-videos', methods=['POST'])
def set_global_video():
    data = json_body()
    return jsonify(media.set_global_video(data.get('video_type'), data.get('url')))
