import logging
import os
import tempfile
from io import BytesIO

from flask import Blueprint, current_app, jsonify, request, send_file

from nestprep import __version__
from nestprep.utils.converter import ConversionSettings, convert_files
from nestprep.utils.dxf_writer import write_dxf
from nestprep.utils.entities import extract_entities, to_record
from nestprep.utils.fitting import fit_arc, fit_circle
from nestprep.utils.geometry import point
from nestprep.utils.validation import apply_auto_fixes, problematic_entity_ids, validate_entities, validation_summary

main_bp = Blueprint('main', __name__)


@main_bp.route('/health', methods=['GET'])
def health():
    return jsonify({"status": "ok", "version": __version__}), 200


@main_bp.route('/convert', methods=['POST'])
def convert():
    files = request.files.getlist('files[]') or request.files.getlist('files') or request.files.getlist('file')
    if not files or all(f.filename == '' for f in files):
        return jsonify({"error": "No selected file"}), 400
    if not any(f.filename.lower().endswith('.dxf') for f in files):
        return jsonify({"error": "File must be a .dxf"}), 400

    try:
        settings = ConversionSettings.from_mapping(request.form.to_dict())
    except ValueError as e:
        return jsonify({"error": f"Invalid settings: {e}"}), 400

    logging.info(f"/convert received files: {[f.filename for f in files]}")
    batch = []
    temp_paths = []
    try:
        for file in files:
            if not file.filename.lower().endswith('.dxf'):
                logging.warning(f"Skipping non-DXF upload {file.filename}")
                continue
            quantity = request.form.get(f'quantity_{file.filename}', 1)
            try:
                quantity = max(1, int(quantity))
            except ValueError:
                return jsonify({"error": f"Invalid quantity for {file.filename}: {quantity}"}), 400
            with tempfile.NamedTemporaryFile(delete=False, suffix='.dxf', dir=current_app.config['UPLOAD_FOLDER']) as temp_file:
                file.save(temp_file)
                temp_paths.append(temp_file.name)
            batch.append({"path": temp_file.name, "quantity": quantity, "name": file.filename})

        result = convert_files(batch, settings)
    finally:
        for path in temp_paths:
            if os.path.exists(path):
                os.unlink(path)

    return jsonify(result.to_dict()), 200 if result.success else 422


def _entities_from_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not isinstance(data.get('entities'), list):
        return None, None, (jsonify({"error": "Body must be JSON with an 'entities' list"}), 400)
    entities, warnings = extract_entities(data['entities'])
    return data, (entities, warnings), None


@main_bp.route('/validate', methods=['POST'])
def validate():
    data, parsed, error = _entities_from_body()
    if error:
        return error
    entities, warnings = parsed
    issues = validate_entities(entities)
    response = {
        "issues": [i.to_dict() for i in issues],
        "summary": validation_summary(issues),
        "problematic_ids": problematic_entity_ids(issues),
        "warnings": warnings,
    }
    if data.get('auto_fix'):
        fixed, applied = apply_auto_fixes(entities, issues)
        response["entities"] = [to_record(e) for e in fixed]
        response["applied"] = [i.to_dict() for i in applied]
    return jsonify(response), 200


@main_bp.route('/fit', methods=['POST'])
def fit():
    data = request.get_json(silent=True) or {}
    kind = str(data.get('kind', '')).lower()
    if kind not in ('circle', 'arc'):
        return jsonify({"error": "kind must be 'circle' or 'arc'"}), 400
    try:
        vertices = [point(v) for v in data.get('vertices') or []]
    except (KeyError, TypeError, ValueError, IndexError) as e:
        return jsonify({"error": f"Invalid vertices: {e}"}), 400

    params = fit_circle(vertices) if kind == 'circle' else fit_arc(vertices)
    if params is None:
        return jsonify({"error": f"Could not fit {kind} to {len(vertices)} vertices"}), 422
    params["center"] = list(params["center"])
    return jsonify({"kind": kind, **params}), 200


@main_bp.route('/export', methods=['POST'])
def export():
    data, parsed, error = _entities_from_body()
    if error:
        return error
    entities, _ = parsed
    if not entities:
        return jsonify({"error": "No supported entities to export"}), 400

    fd, path = tempfile.mkstemp(suffix='.dxf', dir=current_app.config['UPLOAD_FOLDER'])
    os.close(fd)
    try:
        write_dxf(entities, path)
        with open(path, 'rb') as f:
            content = f.read()
    finally:
        os.unlink(path)

    return send_file(BytesIO(content), mimetype='application/dxf', as_attachment=True,
                     download_name=data.get('filename') or 'export.dxf')
