"""
Scan routes blueprint.

- POST /scan - convert an uploaded PDF and return its Markdown
"""

import logging
import uuid

from flask import Blueprint, current_app, jsonify, request
from werkzeug.utils import secure_filename

from scanflow.errors import PipelineError

logger = logging.getLogger(__name__)

scan_bp = Blueprint('scan', __name__)


@scan_bp.route('/scan', methods=['POST'])
def scan():
    """
    Convert the PDF sent as multipart field `file`.

    Responds with per-page Markdown keyed by page number plus the assembled
    document. The uploaded file is removed whatever the outcome.
    """
    upload = request.files.get('file')
    if upload is None or not upload.filename:
        return jsonify({"error": "No PDF file uploaded"}), 400

    coordinator = current_app.config['COORDINATOR']
    upload_dir = current_app.config['UPLOAD_DIR']
    upload_dir.mkdir(parents=True, exist_ok=True)

    token = uuid.uuid4().hex
    file_name = secure_filename(upload.filename) or "upload.pdf"
    upload_path = upload_dir / f"{token}_{file_name}"
    upload.save(str(upload_path))

    try:
        # Upload job ids are single-use; the workspace is removed whatever the outcome
        document = coordinator.convert_file(upload_path, job_id=f"upload/{token}", cleanup_policy="always")
    except PipelineError as e:
        logger.error(f"Conversion of {file_name} failed: {e}")
        return jsonify({"error": "Conversion failed", "details": str(e)}), 500
    finally:
        upload_path.unlink(missing_ok=True)

    return jsonify({
        "pages": {str(n): md for n, md in sorted(document.pages.items())},
        "markdown": document.markdown,
    })
