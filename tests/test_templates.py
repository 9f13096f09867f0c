import unittest

from resi_app.email_notify.templates import TEMPLATES, render


class TestTemplates(unittest.TestCase):
    def test_user_text_is_escaped_in_html(self):
        subject, html = render(
            "complaint_comment",
            {
                "title": "Air <b>bocor</b>",
                "author": "Budi",
                "content": '<a href="http://evil.example">klik</a>',
            },
        )
        self.assertNotIn('<a href="http://evil.example">', html)
        self.assertIn("&lt;a href=&quot;http://evil.example&quot;&gt;klik&lt;/a&gt;", html)
        self.assertNotIn("<b>bocor</b>", html)
        self.assertEqual(subject, "Komentar Baru pada Keluhan: Air <b>bocor</b>")

    def test_list_rows_are_escaped(self):
        _, html = render(
            "complaint_feedback",
            {"title": "Lift", "rating": 2, "comment": "<script>alert(1)</script>"},
        )
        self.assertIn("&lt;script&gt;", html)
        self.assertNotIn("<script>", html)

    def test_numbers_keep_their_formatting(self):
        _, html = render(
            "payment_status",
            {"type": "rent", "currency": "IDR", "amount": 1500000, "status": "completed"},
        )
        self.assertIn("IDR 1,500,000.00", html)

    def test_announcement_deleted_is_registered(self):
        self.assertIn("announcement_deleted", TEMPLATES)
        subject, html = render(
            "announcement_deleted",
            {"title": "Kerja bakti", "type": "event", "property_name": "Taman Anggrek"},
        )
        self.assertEqual(subject, "Pengumuman Dihapus: Kerja bakti")
        self.assertIn("Taman Anggrek", html)


if __name__ == "__main__":
    unittest.main()
