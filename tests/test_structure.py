import xml.etree.ElementTree as ET

from docupload_pipeline.domain.structure import (
    METS_NS,
    XLINK_NS,
    build_mets,
    build_upload_descriptor,
)

NS = {"mets": METS_NS, "xlink": XLINK_NS}


def test_descriptor_lists_pages_in_document_order(make_document):
    document = make_document(3)
    document.metadata.author = "A. Writer"

    descriptor = build_upload_descriptor(document)

    assert descriptor["md"] == {
        "title": "Test document",
        "nrOfPages": 3,
        "author": "A. Writer",
    }
    pages = descriptor["pageList"]["pages"]
    assert [p["pageNr"] for p in pages] == [1, 2, 3]
    assert pages[0] == {"fileName": "0001.jpg", "pageNr": 1, "pageXmlName": "0001.xml"}


def test_descriptor_includes_checksums_when_set(make_document):
    document = make_document(1)
    document.pages[0].image_checksum = "a" * 32
    document.pages[0].transcripts[0].checksum = "b" * 32

    page = build_upload_descriptor(document)["pageList"]["pages"][0]

    assert page["imgChecksum"] == "a" * 32
    assert page["pageXmlChecksum"] == "b" * 32


def test_descriptor_omits_transcript_for_image_only_page(make_document):
    document = make_document(1, with_transcripts=False)

    page = build_upload_descriptor(document)["pageList"]["pages"][0]

    assert "pageXmlName" not in page


def test_mets_has_file_groups_and_structure_map(make_document):
    document = make_document(2)

    root = ET.fromstring(build_mets(document).encode("utf-8"))

    img_files = root.findall(".//mets:fileGrp[@ID='IMG']/mets:file", NS)
    xml_files = root.findall(".//mets:fileGrp[@ID='PAGEXML']/mets:file", NS)
    assert [f.get("ID") for f in img_files] == ["IMG_1", "IMG_2"]
    assert [f.get("ID") for f in xml_files] == ["PAGEXML_1", "PAGEXML_2"]
    assert img_files[0].get("MIMETYPE") == "image/jpeg"
    href = img_files[1].find("mets:FLocat", NS).get(f"{{{XLINK_NS}}}href")
    assert href == "0002.jpg"

    divs = root.findall(".//mets:structMap/mets:div/mets:div", NS)
    assert [d.get("ORDER") for d in divs] == ["1", "2"]
    assert all(d.get("TYPE") == "SINGLE_PAGE" for d in divs)
    file_ids = [a.get("FILEID") for a in divs[0].findall(".//mets:area", NS)]
    assert file_ids == ["IMG_1", "PAGEXML_1"]


def test_mets_embeds_document_metadata(make_document):
    document = make_document(2)

    root = ET.fromstring(build_mets(document).encode("utf-8"))

    md = root.find(".//trpDocMetadata")
    assert md.findtext("title") == "Test document"
    assert md.findtext("nrOfPages") == "2"


def test_mets_checksums_are_md5_attributes(make_document):
    document = make_document(1)
    document.pages[0].image_checksum = "c" * 32

    root = ET.fromstring(build_mets(document).encode("utf-8"))

    image = root.find(".//mets:file[@ID='IMG_1']", NS)
    assert image.get("CHECKSUM") == "c" * 32
    assert image.get("CHECKSUMTYPE") == "MD5"
    transcript = root.find(".//mets:file[@ID='PAGEXML_1']", NS)
    assert transcript.get("CHECKSUM") is None


def test_encodings_list_pages_in_upload_order(make_document):
    document = make_document(3)
    document.pages.reverse()

    descriptor = build_upload_descriptor(document)
    root = ET.fromstring(build_mets(document).encode("utf-8"))

    assert [p["pageNr"] for p in descriptor["pageList"]["pages"]] == [1, 2, 3]
    img_files = root.findall(".//mets:fileGrp[@ID='IMG']/mets:file", NS)
    assert [f.get("ID") for f in img_files] == ["IMG_1", "IMG_2", "IMG_3"]
    divs = root.findall(".//mets:structMap/mets:div/mets:div", NS)
    assert [d.get("ID") for d in divs] == ["PAGE_1", "PAGE_2", "PAGE_3"]


def test_descriptor_announces_image_dimensions(make_document):
    document = make_document(2)
    document.pages[0].width = 2480
    document.pages[0].height = 3508

    pages = build_upload_descriptor(document)["pageList"]["pages"]

    assert (pages[0]["width"], pages[0]["height"]) == (2480, 3508)
    assert "width" not in pages[1]


def test_collection_membership_is_part_of_metadata(make_document):
    document = make_document(1)
    document.metadata.collection_ids = [7, 12]

    descriptor = build_upload_descriptor(document)
    root = ET.fromstring(build_mets(document).encode("utf-8"))

    assert descriptor["md"]["collectionIds"] == [7, 12]
    md = root.find(".//trpDocMetadata")
    assert [el.text for el in md.findall("colId")] == ["7", "12"]
    assert "collectionIds" not in build_upload_descriptor(make_document(1))["md"]
