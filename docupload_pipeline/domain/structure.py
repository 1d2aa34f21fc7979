"""Structural encodings sent when opening an upload session.

The ingestion service learns the shape of a document before any page is sent:
its metadata, the file names of every page image and transcript, their order
and their checksums. Two encodings are supported:

- METS: a METS XML document with an IMG and a PAGEXML file group and a
  physical structure map that fixes the page order.
- JSON: a flat upload descriptor with a metadata block and a page list.

The service matches the files of each subsequent page PUT against the names
announced here.
"""

from typing import Any
import xml.etree.ElementTree as ET

from .models import Document, Page

METS_NS = "http://www.loc.gov/METS/"
XLINK_NS = "http://www.w3.org/1999/xlink"

IMG_FILE_GROUP = "IMG"
PAGEXML_FILE_GROUP = "PAGEXML"

_MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
    ".jp2": "image/jp2",
}

ET.register_namespace("mets", METS_NS)
ET.register_namespace("xlink", XLINK_NS)


def _mets(tag: str) -> str:
    return f"{{{METS_NS}}}{tag}"


def _mime_type(file_name: str) -> str:
    suffix = file_name[file_name.rfind(".") :].lower() if "." in file_name else ""
    return _MIME_TYPES.get(suffix, "application/octet-stream")


def _metadata_dict(document: Document) -> dict[str, Any]:
    md = document.metadata
    result: dict[str, Any] = {"title": md.title, "nrOfPages": document.n_pages}
    if md.author:
        result["author"] = md.author
    if md.description:
        result["desc"] = md.description
    if md.language:
        result["language"] = md.language
    return result


def _page_descriptor(page: Page) -> dict[str, Any]:
    entry: dict[str, Any] = {"fileName": page.image_file_name, "pageNr": page.page_nr}
    if page.image_checksum:
        entry["imgChecksum"] = page.image_checksum
    if page.width is not None and page.height is not None:
        entry["width"] = page.width
        entry["height"] = page.height
    transcript = page.current_transcript
    if transcript is not None:
        entry["pageXmlName"] = transcript.file_name
        if transcript.checksum:
            entry["pageXmlChecksum"] = transcript.checksum
    return entry


def build_upload_descriptor(document: Document) -> dict[str, Any]:
    """Build the JSON upload descriptor for a document.

    Args:
        document: Document to describe. Checksums are included when the
            checksum stage has run.

    Returns:
        Dictionary with an ``md`` metadata block and a ``pageList`` of pages in
        upload order, ready to be sent as JSON.
    """
    md = _metadata_dict(document)
    if document.metadata.collection_ids:
        md["collectionIds"] = list(document.metadata.collection_ids)
    return {
        "md": md,
        "pageList": {"pages": [_page_descriptor(p) for p in document.ordered_pages]},
    }


def _add_file(
    group: ET.Element,
    file_id: str,
    file_name: str,
    checksum: str | None,
    mime_type: str,
) -> None:
    attrib = {"ID": file_id, "MIMETYPE": mime_type}
    if checksum:
        attrib["CHECKSUM"] = checksum
        attrib["CHECKSUMTYPE"] = "MD5"
    file_el = ET.SubElement(group, _mets("file"), attrib)
    ET.SubElement(
        file_el,
        _mets("FLocat"),
        {
            "LOCTYPE": "OTHER",
            "OTHERLOCTYPE": "FILE",
            f"{{{XLINK_NS}}}type": "simple",
            f"{{{XLINK_NS}}}href": file_name,
        },
    )


def build_mets(document: Document) -> str:
    """Build the METS XML encoding of a document.

    The document metadata is embedded in an administrative section, images and
    transcripts are listed in the IMG and PAGEXML file groups, and the
    structure map lists one SINGLE_PAGE division per page in upload order.

    Args:
        document: Document to describe.

    Returns:
        The METS document as an XML string with declaration.
    """
    root = ET.Element(_mets("mets"), {"OBJID": document.metadata.title})

    amd = ET.SubElement(root, _mets("amdSec"), {"ID": "SOURCE"})
    tech = ET.SubElement(amd, _mets("techMD"), {"ID": "MD_ORIG"})
    wrap = ET.SubElement(
        tech, _mets("mdWrap"), {"MDTYPE": "OTHER", "OTHERMDTYPE": "TRP_DOC_MD"}
    )
    xml_data = ET.SubElement(wrap, _mets("xmlData"))
    md_el = ET.SubElement(xml_data, "trpDocMetadata")
    for key, value in _metadata_dict(document).items():
        ET.SubElement(md_el, key).text = str(value)
    for col_id in document.metadata.collection_ids:
        ET.SubElement(md_el, "colId").text = str(col_id)

    file_sec = ET.SubElement(root, _mets("fileSec"))
    master = ET.SubElement(file_sec, _mets("fileGrp"), {"ID": "MASTER"})
    img_group = ET.SubElement(master, _mets("fileGrp"), {"ID": IMG_FILE_GROUP})
    xml_group = ET.SubElement(master, _mets("fileGrp"), {"ID": PAGEXML_FILE_GROUP})

    struct_map = ET.SubElement(
        root, _mets("structMap"), {"ID": "TRP_STRUCTMAP", "TYPE": "MANUSCRIPT"}
    )
    doc_div = ET.SubElement(struct_map, _mets("div"), {"ID": "TRP_DOC_DIV"})

    for page in document.ordered_pages:
        img_id = f"IMG_{page.page_nr}"
        _add_file(
            img_group,
            img_id,
            page.image_file_name,
            page.image_checksum,
            _mime_type(page.image_file_name),
        )
        page_div = ET.SubElement(
            doc_div,
            _mets("div"),
            {
                "ID": f"PAGE_{page.page_nr}",
                "ORDER": str(page.page_nr),
                "TYPE": "SINGLE_PAGE",
            },
        )
        ET.SubElement(page_div, _mets("fptr")).append(
            ET.Element(_mets("area"), {"FILEID": img_id})
        )

        transcript = page.current_transcript
        if transcript is not None:
            xml_id = f"PAGEXML_{page.page_nr}"
            _add_file(
                xml_group,
                xml_id,
                transcript.file_name,
                transcript.checksum,
                "application/xml",
            )
            ET.SubElement(page_div, _mets("fptr")).append(
                ET.Element(_mets("area"), {"FILEID": xml_id})
            )

    return ET.tostring(root, encoding="utf-8", xml_declaration=True).decode("utf-8")
