"""Tests for parsing and rendering vCards with VCardCodec."""

import datetime
import logging

import pytest

from contactrows import records as rec
from contactrows.builders import build_nickname
from contactrows.codec import (
    NOTE_SEPARATOR,
    VCARD_3,
    VCARD_4,
    CodecConfig,
    VCardCodec,
    read_vcard_file,
    write_vcard_file,
)
from contactrows.dates import DateOrTime, PartialDate
from contactrows.model import (
    Contact,
    Email,
    Impp,
    LabeledProperty,
    Nickname,
    Related,
    Telephone,
)
from contactrows.properties import DEFAULT_EXTENSIONS, PropertyExtension

JPEG = b"\xff\xd8\xff\xe0" + b"\x00\x10JFIF" * 4

APPLE_CARD = "\r\n".join([
    "BEGIN:VCARD",
    "VERSION:3.0",
    "UID:abc-123",
    "FN:Dr. Jane Q. Doe",
    "N:Doe;Jane;Q.;Dr.;",
    "X-PHONETIC-LAST-NAME:doh",
    "NICKNAME:Janie",
    "ORG:ACME;R&D",
    "TITLE:Engineer",
    "TEL;TYPE=CELL,VOICE:+31 6 46432757",
    "item1.TEL:555-1234",
    "item1.X-ABLABEL:Boat",
    "EMAIL;TYPE=INTERNET,HOME,pref:jane@example.com",
    "ADR;TYPE=WORK:;;Main St 1;Springfield;IL;12345;USA",
    "IMPP;TYPE=home:xmpp:jane@example.com",
    "BDAY;X-APPLE-OMIT-YEAR=1604:1604-05-12",
    "item2.X-ABDATE:2015-06-01",
    "item2.X-ABLABEL:_$!<Anniversary>!$_",
    "item3.X-ABRELATEDNAMES:Joe",
    "item3.X-ABLABEL:_$!<Brother>!$_",
    "item4.X-ABDATE:2010-09-01",
    "item4.X-ABLABEL:Graduation",
    "NOTE:Met at PyCon",
    "NOTE:Likes tea",
    "CATEGORIES:Friends,Work",
    "REV:20240101T120000Z",
    "X-CUSTOM-THING:keep me",
    "item9.X-ABLABEL:Orphan",
    "END:VCARD",
    "",
])


def _lines(text):
    """Unfold vCard text into logical lines."""
    return text.replace("\r\n ", "").replace("\r\n\t", "").split("\r\n")


def _find(text, name):
    """Logical lines of a property, matched on the name with optional group."""
    found = []
    for line in _lines(text):
        head = line.split(":", 1)[0].split(";", 1)[0].upper()
        if head == name.upper() or head.endswith("." + name.upper()):
            found.append(line)
    return found


@pytest.fixture
def apple_contact():
    return VCardCodec().parse(APPLE_CARD)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class TestCodecConfig:
    def test_defaults(self):
        config = CodecConfig()
        assert config.version == VCARD_3
        assert config.extensions is DEFAULT_EXTENSIONS

    def test_unsupported_version(self):
        with pytest.raises(ValueError):
            CodecConfig(version="2.1")


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class TestParse:
    def test_names(self, apple_contact):
        assert apple_contact.uid == "abc-123"
        assert apple_contact.display_name == "Dr. Jane Q. Doe"
        assert apple_contact.family_name == "Doe"
        assert apple_contact.given_name == "Jane"
        assert apple_contact.middle_name == "Q."
        assert apple_contact.prefix == "Dr."
        assert apple_contact.suffix is None
        assert apple_contact.phonetic_family_name == "doh"
        assert apple_contact.nickname.property.values == ["Janie"]

    def test_organization(self, apple_contact):
        assert apple_contact.organization.values == ["ACME", "R&D"]
        assert apple_contact.job_title == "Engineer"

    def test_phone_types_and_labels(self, apple_contact):
        cell, boat = apple_contact.phone_numbers
        assert cell.property.text == "+31 6 46432757"
        assert cell.property.types == ["cell", "voice"]
        assert cell.label is None
        assert boat.property.text == "555-1234"
        assert boat.label == "Boat"

    def test_email_pref_token(self, apple_contact):
        email = apple_contact.emails[0].property
        assert email.value == "jane@example.com"
        assert email.types == ["internet", "home", "pref"]

    def test_address(self, apple_contact):
        address = apple_contact.addresses[0].property
        assert address.street == "Main St 1"
        assert address.locality == "Springfield"
        assert address.region == "IL"
        assert address.postal_code == "12345"
        assert address.country == "USA"
        assert address.po_box is None
        assert address.types == ["work"]

    def test_impp(self, apple_contact):
        impp = apple_contact.impps[0].property
        assert impp.uri == "xmpp:jane@example.com"
        assert impp.types == ["home"]

    def test_birthday_without_year(self, apple_contact):
        assert apple_contact.birthday == DateOrTime(
            partial_date=PartialDate(month=5, day=12)
        )

    def test_apple_anniversary(self, apple_contact):
        assert apple_contact.anniversary.date == datetime.date(2015, 6, 1)

    def test_custom_date_label(self, apple_contact):
        [graduation] = apple_contact.custom_dates
        assert graduation.label == "Graduation"
        assert graduation.property.date == datetime.date(2010, 9, 1)

    def test_related_name_with_apple_label(self, apple_contact):
        [joe] = apple_contact.relations
        assert joe.text == "Joe"
        assert joe.types == ["brother"]

    def test_notes_are_joined(self, apple_contact):
        assert apple_contact.note == f"Met at PyCon{NOTE_SEPARATOR}Likes tea"

    def test_categories(self, apple_contact):
        assert apple_contact.categories == ["Friends", "Work"]

    def test_revision(self, apple_contact):
        assert apple_contact.revision == datetime.datetime(
            2024, 1, 1, 12, 0, tzinfo=datetime.timezone.utc
        )

    def test_unknown_properties_are_retained(self, apple_contact):
        assert "X-CUSTOM-THING:keep me" in apple_contact.unknown_properties
        assert "item9.X-ABLABEL:Orphan" in apple_contact.unknown_properties
        assert "Boat" not in apple_contact.unknown_properties

    def test_missing_uid_is_generated(self, caplog):
        text = "BEGIN:VCARD\r\nVERSION:3.0\r\nFN:Nobody\r\nEND:VCARD\r\n"
        with caplog.at_level(logging.WARNING, logger="contactrows"):
            contact = VCardCodec().parse(text)
        assert contact.uid
        assert "without UID" in caplog.text

    def test_vcard4_group_and_related(self):
        text = "\r\n".join([
            "BEGIN:VCARD",
            "VERSION:4.0",
            "UID:urn:uuid:group-1",
            "KIND:group",
            "FN:Team",
            "MEMBER:urn:uuid:member-1",
            "MEMBER:urn:uuid:member-2",
            "RELATED;TYPE=friend;VALUE=text:Bob",
            "RELATED;TYPE=spouse:urn:uuid:member-2",
            "ANNIVERSARY:--0601",
            "TEL;TYPE=work;PREF=1:+1 555 0100",
            "END:VCARD",
            "",
        ])
        contact = VCardCodec().parse(text)
        assert contact.uid == "group-1"
        assert contact.group is True
        assert contact.members == ["member-1", "member-2"]
        bob, spouse = contact.relations
        assert bob.text == "Bob" and bob.types == ["friend"]
        assert spouse.uri == "urn:uuid:member-2"
        assert contact.anniversary.partial_date == PartialDate(month=6, day=1)
        assert contact.phone_numbers[0].property.pref == 1

    def test_vcard3_group(self):
        text = "\r\n".join([
            "BEGIN:VCARD",
            "VERSION:3.0",
            "UID:group-1",
            "FN:Team",
            "N:Team;;;;",
            "X-ADDRESSBOOKSERVER-KIND:group",
            "X-ADDRESSBOOKSERVER-MEMBER:urn:uuid:member-1",
            "END:VCARD",
            "",
        ])
        contact = VCardCodec().parse(text)
        assert contact.group is True
        assert contact.members == ["member-1"]

    def test_photo_base64(self):
        import base64

        encoded = base64.b64encode(JPEG).decode("ascii")
        text = (
            "BEGIN:VCARD\r\nVERSION:3.0\r\nUID:p\r\n"
            f"PHOTO;ENCODING=b;TYPE=JPEG:{encoded}\r\nEND:VCARD\r\n"
        )
        assert VCardCodec().parse(text).photo == JPEG

    def test_photo_data_uri(self):
        import base64

        encoded = base64.b64encode(JPEG).decode("ascii")
        text = (
            "BEGIN:VCARD\r\nVERSION:4.0\r\nUID:p\r\n"
            f"PHOTO:data:image/jpeg;base64,{encoded}\r\nEND:VCARD\r\n"
        )
        assert VCardCodec().parse(text).photo == JPEG

    def test_external_photo_uses_downloader(self):
        calls = []

        def downloader(url):
            calls.append(url)
            return JPEG

        text = (
            "BEGIN:VCARD\r\nVERSION:4.0\r\nUID:p\r\n"
            "PHOTO:https://example.com/jane.jpg\r\nEND:VCARD\r\n"
        )
        contact = VCardCodec(CodecConfig(downloader=downloader)).parse(text)
        assert contact.photo == JPEG
        assert calls == ["https://example.com/jane.jpg"]

    def test_parse_all(self):
        text = APPLE_CARD + APPLE_CARD.replace("UID:abc-123", "UID:def-456")
        uids = [c.uid for c in VCardCodec().parse_all(text)]
        assert uids == ["abc-123", "def-456"]

    def test_parse_without_vcard(self):
        with pytest.raises(ValueError):
            VCardCodec().parse("")


# ---------------------------------------------------------------------------
# Comma separated and comma containing values
# ---------------------------------------------------------------------------


def _card(*lines):
    return "\r\n".join([
        "BEGIN:VCARD", "VERSION:3.0", "UID:u1", "FN:Jane", *lines, "END:VCARD", "",
    ])


class TestCommas:
    def test_nickname_list(self):
        contact = VCardCodec().parse(_card("NICKNAME:Nick1,Nick2"))
        assert contact.nickname.property.values == ["Nick1", "Nick2"]

        records = build_nickname(contact)
        assert [r.fields[rec.NAME] for r in records] == ["Nick1", "Nick2"]

    def test_nickname_with_escaped_comma(self):
        contact = VCardCodec().parse(_card("NICKNAME:Smith\\, Jr.,JJ"))
        assert contact.nickname.property.values == ["Smith, Jr.", "JJ"]

    def test_folded_nickname_list(self):
        contact = VCardCodec().parse(_card("NICKNAME;TYPE=x-short-name:Nick1,Ni", " ck2"))
        assert contact.nickname.property.values == ["Nick1", "Nick2"]
        assert contact.nickname.property.types == ["x-short-name"]

    @pytest.mark.parametrize("label", ["Boat, car", "Boat\\, car"])
    def test_label_keeps_commas(self, label):
        contact = VCardCodec().parse(_card("item1.TEL:+1234", f"item1.X-ABLABEL:{label}"))
        [phone] = contact.phone_numbers
        assert phone.property.text == "+1234"
        assert phone.label == "Boat, car"

    def test_relation_label_with_comma(self):
        contact = VCardCodec().parse(_card(
            "item1.X-ABRELATEDNAMES:Ann", "item1.X-ABLABEL:Cousin, Neighbor",
        ))
        [relation] = contact.relations
        assert relation.text == "Ann"
        assert relation.types == ["cousin", "neighbor"]

    def test_text_extension_keeps_commas(self):
        contact = VCardCodec().parse(_card("X-PHONETIC-LAST-NAME:van, der"))
        assert contact.phonetic_family_name == "van, der"

    def test_orphan_label_with_comma_is_retained_escaped(self):
        contact = VCardCodec().parse(_card("item9.X-ABLABEL:A, B"))
        assert "item9.X-ABLABEL:A\\, B" in contact.unknown_properties

    def test_escaped_backslash_survives(self):
        contact = VCardCodec().parse(_card("item1.TEL:+1234", "item1.X-ABLABEL:C:\\\\temp"))
        assert contact.phone_numbers[0].label == "C:\\temp"


# ---------------------------------------------------------------------------
# Extension properties
# ---------------------------------------------------------------------------


class TestExtensions:
    @pytest.fixture
    def codec(self):
        shoe_size = PropertyExtension("X-SHOE-SIZE", int, str)
        return VCardCodec(CodecConfig(
            extensions=DEFAULT_EXTENSIONS.with_extensions(shoe_size)
        ))

    def test_parsed_into_extra_properties(self, codec):
        text = "BEGIN:VCARD\r\nVERSION:3.0\r\nUID:x\r\nX-SHOE-SIZE:42\r\nEND:VCARD\r\n"
        contact = codec.parse(text)
        assert contact.extra_properties == {"X-SHOE-SIZE": [42]}
        assert contact.unknown_properties is None

    def test_invalid_value_is_dropped(self, codec, caplog):
        text = "BEGIN:VCARD\r\nVERSION:3.0\r\nUID:x\r\nX-SHOE-SIZE:big\r\nEND:VCARD\r\n"
        with caplog.at_level(logging.WARNING, logger="contactrows"):
            contact = codec.parse(text)
        assert contact.extra_properties == {}
        assert contact.unknown_properties is None
        assert "X-SHOE-SIZE" in caplog.text

    def test_rendered(self, codec):
        contact = Contact(uid="x", extra_properties={"X-SHOE-SIZE": [42]})
        assert _find(codec.render(contact), "X-SHOE-SIZE") == ["X-SHOE-SIZE:42"]

    def test_unregistered_extra_property_is_not_written(self):
        contact = Contact(uid="x", extra_properties={"X-SHOE-SIZE": [42]})
        assert _find(VCardCodec().render(contact), "X-SHOE-SIZE") == []


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


class TestRender:
    def test_header_and_formatted_name_fallback(self):
        contact = Contact(uid="u1", emails=[LabeledProperty(Email("jane@example.com"))])
        text = VCardCodec().render(contact)
        assert text.startswith("BEGIN:VCARD\r\nVERSION:3.0\r\n")
        assert _find(text, "FN") == ["FN:jane@example.com"]
        assert _find(text, "UID") == ["UID:u1"]
        assert len(_find(text, "N")) == 1
        assert len(_find(text, "REV")) == 1

    def test_vcard4_omits_empty_name(self):
        contact = Contact(uid="u1", display_name="Jane")
        text = VCardCodec(CodecConfig(version=VCARD_4)).render(contact)
        assert "VERSION:4.0" in _lines(text)
        assert _find(text, "N") == []

    def test_label_group(self):
        contact = Contact(uid="u1", phone_numbers=[
            LabeledProperty(Telephone("555-1234"), "Boat"),
        ])
        text = VCardCodec().render(contact)
        assert _find(text, "TEL") == ["item1.TEL:555-1234"]
        assert _find(text, "X-ABLABEL") == ["item1.X-ABLABEL:Boat"]

    def test_label_groups_skip_retained_groups(self):
        contact = Contact(
            uid="u1",
            phone_numbers=[LabeledProperty(Telephone("555-1234"), "Boat")],
            unknown_properties="item1.X-FOO:bar\r\n",
        )
        text = VCardCodec().render(contact)
        assert _find(text, "TEL") == ["item2.TEL:555-1234"]
        assert _find(text, "X-FOO") == ["item1.X-FOO:bar"]

    def test_pref_in_vcard3_and_vcard4(self):
        contact = Contact(uid="u1", emails=[
            LabeledProperty(Email("jane@example.com", ["home"], pref=1)),
        ])
        [v3] = _find(VCardCodec().render(contact), "EMAIL")
        assert "pref" in v3.split(":", 1)[0].lower()
        assert "PREF=" not in v3

        v4_codec = VCardCodec(CodecConfig(version=VCARD_4))
        [v4] = _find(v4_codec.render(contact), "EMAIL")
        assert "PREF=1" in v4

    def test_nickname_one_line_per_value(self):
        contact = Contact(uid="u1", nickname=LabeledProperty(Nickname(["Janie", "JD"])))
        assert _find(VCardCodec().render(contact), "NICKNAME") == [
            "NICKNAME:Janie", "NICKNAME:JD",
        ]

    def test_date_without_year_in_vcard3(self):
        contact = Contact(
            uid="u1",
            birthday=DateOrTime(partial_date=PartialDate(month=5, day=12)),
            anniversary=DateOrTime(date=datetime.date(2015, 6, 1)),
        )
        text = VCardCodec().render(contact)
        [bday] = _find(text, "BDAY")
        assert bday.endswith(":1604-05-12")
        assert "X-APPLE-OMIT-YEAR=1604" in bday
        assert _find(text, "X-ABDATE") == ["item1.X-ABDATE:2015-06-01"]
        assert _find(text, "X-ABLABEL") == ["item1.X-ABLABEL:_$!<Anniversary>!$_"]

    def test_dates_in_vcard4(self):
        contact = Contact(
            uid="u1",
            birthday=DateOrTime(partial_date=PartialDate(month=5, day=12)),
            anniversary=DateOrTime(date=datetime.date(2015, 6, 1)),
        )
        text = VCardCodec(CodecConfig(version=VCARD_4)).render(contact)
        assert _find(text, "BDAY") == ["BDAY:--0512"]
        assert _find(text, "ANNIVERSARY") == ["ANNIVERSARY:20150601"]

    def test_group_vcard3(self):
        contact = Contact(uid="g1", group=True, display_name="Team", members=["m1"])
        text = VCardCodec().render(contact)
        assert _find(text, "X-ADDRESSBOOKSERVER-KIND") == ["X-ADDRESSBOOKSERVER-KIND:group"]
        assert _find(text, "X-ADDRESSBOOKSERVER-MEMBER") == [
            "X-ADDRESSBOOKSERVER-MEMBER:urn:uuid:m1"
        ]
        [name] = _find(text, "N")
        assert name.startswith("N:Team;")

    def test_group_vcard4(self):
        contact = Contact(uid="g1", group=True, display_name="Team", members=["m1"])
        text = VCardCodec(CodecConfig(version=VCARD_4)).render(contact)
        assert _find(text, "KIND") == ["KIND:group"]
        assert _find(text, "MEMBER") == ["MEMBER:urn:uuid:m1"]

    def test_relations_vcard3(self):
        contact = Contact(uid="u1", relations=[
            Related(text="Ann", types=["cousin", "neighbor"]),
        ])
        text = VCardCodec().render(contact)
        assert _find(text, "X-ABRELATEDNAMES") == ["item1.X-ABRELATEDNAMES:Ann"]
        assert _find(text, "X-ABLABEL") == ["item1.X-ABLABEL:Cousin\\, Neighbor"]

    def test_relations_vcard4(self):
        contact = Contact(uid="u1", relations=[Related(text="Bob", types=["friend"])])
        [line] = _find(VCardCodec(CodecConfig(version=VCARD_4)).render(contact), "RELATED")
        assert line.endswith(":Bob")
        assert "VALUE=text" in line
        assert "TYPE=friend" in line

    def test_categories_with_comma(self):
        contact = Contact(uid="u1", categories=["Friends", "Work, old"])
        assert _find(VCardCodec().render(contact), "CATEGORIES") == [
            "CATEGORIES:Friends,Work\\, old"
        ]

    def test_revision_in_utc(self):
        offset = datetime.timezone(datetime.timedelta(hours=2))
        contact = Contact(uid="u1", revision=datetime.datetime(2024, 1, 1, 14, 0, tzinfo=offset))
        assert _find(VCardCodec().render(contact), "REV") == ["REV:20240101T120000Z"]

    def test_no_product_id(self):
        codec = VCardCodec(CodecConfig(product_id=None))
        assert _find(codec.render(Contact(uid="u1")), "PRODID") == []


# ---------------------------------------------------------------------------
# vCard -> Contact -> vCard
# ---------------------------------------------------------------------------


class TestRoundTrip:
    @pytest.mark.parametrize("version", [VCARD_3, VCARD_4])
    def test_parse_rendered_card(self, apple_contact, version):
        codec = VCardCodec(CodecConfig(version=version))
        again = codec.parse(codec.render(apple_contact))

        assert again.uid == apple_contact.uid
        assert again.display_name == apple_contact.display_name
        assert again.phonetic_family_name == "doh"
        assert [p.label for p in again.phone_numbers] == [None, "Boat"]
        assert again.birthday == apple_contact.birthday
        assert again.anniversary == apple_contact.anniversary
        assert again.custom_dates == apple_contact.custom_dates
        assert again.categories == ["Friends", "Work"]
        assert again.note == apple_contact.note
        assert again.revision == apple_contact.revision
        assert "X-CUSTOM-THING:keep me" in again.unknown_properties

    @pytest.mark.parametrize("version", [VCARD_3, VCARD_4])
    def test_photo(self, version):
        codec = VCardCodec(CodecConfig(version=version))
        contact = Contact(uid="u1", photo=JPEG)
        assert codec.parse(codec.render(contact)).photo == JPEG

    def test_note_with_special_characters(self):
        codec = VCardCodec()
        contact = Contact(uid="u1", note="Hello, world;\nsecond line")
        assert codec.parse(codec.render(contact)).note == "Hello, world;\nsecond line"

    def test_sip_impp(self):
        codec = VCardCodec()
        contact = Contact(uid="u1", impps=[
            LabeledProperty(Impp("sip:jane@sip.example.com", ["work"])),
        ])
        again = codec.parse(codec.render(contact))
        assert again.impps[0].property.uri == "sip:jane@sip.example.com"


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


class TestFiles:
    def test_broken_card_is_skipped(self, tmp_path, caplog):
        broken = "BEGIN:VCARD\nVERSION:3.0\nthis line has no colon\nEND:VCARD\n"
        path = tmp_path / "contacts.vcf"
        path.write_text(APPLE_CARD + broken, encoding="utf-8")

        with caplog.at_level(logging.WARNING, logger="contactrows"):
            contacts = read_vcard_file(path)

        assert [c.uid for c in contacts] == ["abc-123"]
        assert "Skipping vCard block 2" in caplog.text

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_vcard_file(tmp_path / "missing.vcf")

    def test_no_contacts(self, tmp_path):
        path = tmp_path / "empty.vcf"
        path.write_text("nothing here\n", encoding="utf-8")
        with pytest.raises(ValueError):
            read_vcard_file(path)

    def test_write_then_read(self, tmp_path):
        path = tmp_path / "out" / "contacts.vcf"
        contacts = [Contact(uid="a", display_name="A"), Contact(uid="b", display_name="B")]
        write_vcard_file(contacts, path)
        assert [c.display_name for c in read_vcard_file(path)] == ["A", "B"]
