"""Recovery snapshot of an interrupted upload.

When an upload fails or is canceled, the last known upload session is written
to ``upload.xml`` in the document's local staging folder. The snapshot is for
manual inspection and out-of-band resume tooling; the pipeline never reads it
back on its own.
"""

import logging
from pathlib import Path
from typing import Any
import xml.etree.ElementTree as ET

from .models import UploadSession

logger = logging.getLogger(__name__)

UPLOAD_XML_NAME = "upload.xml"
ROOT_TAG = "trpUpload"


def _to_element(tag: str, value: Any) -> ET.Element:
    element = ET.Element(tag)
    if isinstance(value, dict):
        for key, child in value.items():
            if isinstance(child, list):
                for item in child:
                    element.append(_to_element(key, item))
            else:
                element.append(_to_element(key, child))
    elif isinstance(value, bool):
        element.text = "true" if value else "false"
    else:
        element.text = str(value)
    return element


def _from_element(element: ET.Element) -> Any:
    children = list(element)
    if not children:
        return element.text or ""
    result: dict[str, Any] = {}
    for child in children:
        value = _from_element(child)
        if child.tag in result:
            if not isinstance(result[child.tag], list):
                result[child.tag] = [result[child.tag]]
            result[child.tag].append(value)
        else:
            result[child.tag] = value
    return result


def snapshot_path(local_folder: Path) -> Path:
    """Return the path of the recovery snapshot for a staging folder."""
    return Path(local_folder) / UPLOAD_XML_NAME


def serialize_session(session: UploadSession) -> str:
    """Render an upload session as the XML stored in upload.xml."""
    root = _to_element(ROOT_TAG, session.to_dict())
    ET.indent(root)
    return ET.tostring(root, encoding="utf-8", xml_declaration=True).decode("utf-8")


class RecoverySnapshotWriter:
    """Writes the last known upload session to the document's staging folder.

    The writer never raises: it runs while an upload failure or cancellation is
    already propagating, and that original error must reach the caller
    unchanged.
    """

    def write(self, session: UploadSession | None, local_folder: Path) -> Path | None:
        """Write the session to ``<local_folder>/upload.xml``.

        Any previous snapshot with the same name is overwritten.

        Args:
            session: Last known upload session. None if the failure happened
                before a session was opened, in which case nothing is written.
            local_folder: Local staging folder of the document.

        Returns:
            Path of the written snapshot, or None if nothing was written.
        """
        if session is None:
            logger.debug("No upload session to persist, skipping upload.xml")
            return None

        path = snapshot_path(local_folder)
        try:
            path.write_text(serialize_session(session), encoding="utf-8")
            logger.info(
                f"Stored upload state (upload_id={session.upload_id}) at {path}"
            )
            return path
        except OSError as e:
            logger.error(f"Could not store {UPLOAD_XML_NAME} at {path}: {e}")
        except Exception as e:
            logger.error(
                f"Unexpected error storing {UPLOAD_XML_NAME} at {path}: {e}",
                exc_info=True,
            )
        return None


def read_snapshot(local_folder: Path) -> UploadSession | None:
    """Read a recovery snapshot written by RecoverySnapshotWriter.

    Args:
        local_folder: Local staging folder of the document.

    Returns:
        The stored upload session, or None if no snapshot exists.

    Raises:
        ValueError: If the snapshot exists but cannot be parsed.
    """
    path = snapshot_path(local_folder)
    if not path.exists():
        return None
    try:
        root = ET.parse(path).getroot()
    except ET.ParseError as e:
        raise ValueError(f"Invalid {UPLOAD_XML_NAME} at {path}: {e}") from e

    data = _from_element(root)
    if not isinstance(data, dict):
        raise ValueError(f"Invalid {UPLOAD_XML_NAME} at {path}: empty document")
    return UploadSession.from_dict(data)
