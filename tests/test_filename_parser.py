import unittest

from callsync import filename_parser
from callsync.core.models import CallType


class TestPhoneNumber(unittest.TestCase):
    def test_dashed_number_with_date_suffix(self):
        self.assertEqual(filename_parser.parse_phone_number("010-1234-5678_20240109.m4a"), "01012345678")

    def test_dotted_number(self):
        self.assertEqual(filename_parser.parse_phone_number("02.123.4567 outgoing.m4a"), "021234567")

    def test_number_after_contact_name(self):
        self.assertEqual(
            filename_parser.parse_phone_number("홍길동 010-1234-5678_260109_162929.m4a"),
            "01012345678",
        )

    def test_dashed_numbers_are_normalized(self):
        for number in ["010-9876-5432", "011-234-5678", "031-123-4567", "0505-123-4567"]:
            with self.subTest(number=number):
                self.assertEqual(
                    filename_parser.parse_phone_number(f"{number}.m4a"), number.replace("-", "")
                )

    def test_date_digits_are_not_a_phone_number(self):
        self.assertEqual(filename_parser.parse_phone_number("260109123456.m4a"), "")

    def test_date_like_match_falls_back_to_short_code(self):
        # 201123... reads as YYMMDD, so only the leading 3-digit group survives
        self.assertEqual(filename_parser.parse_phone_number("201-123-4567.m4a"), "201")

    def test_short_codes(self):
        self.assertEqual(filename_parser.parse_phone_number("ACME 1588.m4a"), "1588")
        self.assertEqual(filename_parser.parse_phone_number("안내 1644.m4a"), "1644")
        self.assertEqual(filename_parser.parse_phone_number("114 안내.m4a"), "114")

    def test_short_code_next_to_date_groups(self):
        self.assertEqual(filename_parser.parse_phone_number("114_260109_162929.m4a"), "114")

    def test_four_digit_code_outside_known_prefixes(self):
        self.assertEqual(filename_parser.parse_phone_number("Kim 2345.m4a"), "")

    def test_full_number_wins_over_short_code(self):
        self.assertEqual(filename_parser.parse_phone_number("1588 010-1234-5678.m4a"), "01012345678")

    def test_no_digits(self):
        self.assertEqual(filename_parser.parse_phone_number("memo.m4a"), "")


class TestDatePattern(unittest.TestCase):
    def test_valid_dates(self):
        self.assertTrue(filename_parser.is_date_pattern("260109"))
        self.assertTrue(filename_parser.is_date_pattern("20240109"[2:]))
        self.assertTrue(filename_parser.is_date_pattern("351231999"))

    def test_rejected(self):
        self.assertFalse(filename_parser.is_date_pattern("010123"))   # year 01
        self.assertFalse(filename_parser.is_date_pattern("261309"))   # month 13
        self.assertFalse(filename_parser.is_date_pattern("260100"))   # day 0
        self.assertFalse(filename_parser.is_date_pattern("36010"))    # too short
        self.assertFalse(filename_parser.is_date_pattern("190101"))   # year 19


class TestContactName(unittest.TestCase):
    def test_korean_label_and_datetime(self):
        self.assertEqual(filename_parser.parse_contact_name("통화 녹음 홍길동_20240109_163022.m4a"), "홍길동")

    def test_label_without_space(self):
        self.assertEqual(filename_parser.parse_contact_name("통화녹음_홍길동_240109_163022.m4a"), "홍길동")

    def test_english_label_and_dashed_datetime(self):
        self.assertEqual(
            filename_parser.parse_contact_name("Call recording Kim_2024-01-09_16-30-22.m4a"), "Kim"
        )

    def test_compact_timestamp(self):
        self.assertEqual(filename_parser.parse_contact_name("Recording_Lee20240109163022.m4a"), "Lee")

    def test_phone_number_removed(self):
        self.assertEqual(
            filename_parser.parse_contact_name("홍길동 010-1234-5678_260109_162929.m4a"), "홍길동"
        )

    def test_organization_name_kept(self):
        self.assertEqual(
            filename_parser.parse_contact_name("ACME(IT) Kim_260109_162929.m4a"), "ACME(IT) Kim"
        )

    def test_only_a_number(self):
        self.assertEqual(filename_parser.parse_contact_name("010-1234-5678.m4a"), "")


class TestCallType(unittest.TestCase):
    def test_korean_keywords(self):
        self.assertEqual(filename_parser.parse_call_type("수신_홍길동.m4a"), CallType.INCOMING)
        self.assertEqual(filename_parser.parse_call_type("발신_홍길동.m4a"), CallType.OUTGOING)

    def test_english_keywords_any_case(self):
        self.assertEqual(filename_parser.parse_call_type("Incoming call.m4a"), CallType.INCOMING)
        self.assertEqual(filename_parser.parse_call_type("OUTGOING_Kim.m4a"), CallType.OUTGOING)

    def test_unknown(self):
        self.assertEqual(filename_parser.parse_call_type("홍길동.m4a"), CallType.UNKNOWN)


class TestParse(unittest.TestCase):
    def test_label_name_no_number(self):
        info = filename_parser.parse("통화 녹음 홍길동_20240109_163022.m4a")
        self.assertEqual(info.phone_number, "")
        self.assertEqual(info.contact_name, "홍길동")
        self.assertEqual(info.call_type, CallType.UNKNOWN)

    def test_never_raises(self):
        for name in ["", ".", ".m4a", "____", "-", "통화 녹음 ", "１２３-４５６７-８９０１.m4a"]:
            with self.subTest(name=name):
                filename_parser.parse(name)

    def test_full_width_digits_are_not_numbers(self):
        self.assertEqual(filename_parser.parse("１２３-４５６７-８９０１.m4a").phone_number, "")


if __name__ == '__main__':
    unittest.main()
