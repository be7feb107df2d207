"""JSON API over the content service."""

from flask import Blueprint, current_app, jsonify, request

from modsync.errors import CatalogError, UnknownInstance

api_bp = Blueprint('api', __name__, url_prefix='/api')


def _service():
    return current_app.extensions['modsync']


def _records_json(records):
    return jsonify({"items": [r.to_dict() for r in records], "total": len(records)})


@api_bp.errorhandler(UnknownInstance)
def unknown_instance(error):
    return jsonify({"error": str(error), "instance_id": error.instance_id}), 404


@api_bp.errorhandler(ValueError)
def bad_request(error):
    return jsonify({"error": str(error)}), 400


@api_bp.errorhandler(CatalogError)
def catalog_error(error):
    return jsonify({"error": str(error), "source": error.source}), 502


@api_bp.route('/instances/<instance_id>/content/<content_type>')
def api_list_content(instance_id, content_type):
    """Installed content with cached identity and update verdicts."""
    return _records_json(_service().list_content(instance_id, content_type))


@api_bp.route('/instances/<instance_id>/content/<content_type>/refresh', methods=['POST'])
def api_refresh_content(instance_id, content_type):
    """Identify unknown files and check for updates, then list."""
    return _records_json(_service().refresh(instance_id, content_type))


@api_bp.route('/instances/<instance_id>/content/<content_type>/check-updates', methods=['POST'])
def api_check_updates(instance_id, content_type):
    return _records_json(_service().check_updates(instance_id, content_type))


@api_bp.route('/instances/<instance_id>/content/<content_type>/<file_name>/enabled', methods=['PUT'])
def api_set_enabled(instance_id, content_type, file_name):
    data = request.get_json(silent=True) or {}
    new_name = _service().set_enabled(instance_id, content_type, file_name, bool(data.get("enabled", True)))
    return jsonify({"file_name": new_name})


@api_bp.route('/instances/<instance_id>/compatibility/<project_id>')
def api_compatibility(instance_id, project_id):
    """Best version/file of a Modrinth project for this instance."""
    content_type = request.args.get('type', 'mod')
    result = _service().compatibility(instance_id, project_id, content_type)
    return jsonify(result.to_dict())


@api_bp.route('/instances/<instance_id>/cache', methods=['DELETE'])
def api_forget_instance(instance_id):
    removed = _service().forget_instance(instance_id)
    return jsonify({"removed": removed})


@api_bp.route('/compatibility/<project_id>')
def api_compatibility_all(project_id):
    """Per-instance compatibility of a Modrinth project, with a preselected instance."""
    content_type = request.args.get('type', 'mod')
    return jsonify(_service().compatibility_all(project_id, content_type))
