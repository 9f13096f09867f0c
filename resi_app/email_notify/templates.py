from html import escape
from typing import Callable, Dict, Tuple


def _layout(title: str, body: str) -> str:
    return f"""
        <html>
        <body style="font-family: Arial, sans-serif; line-height: 1.6;">
            <h2>{title}</h2>
            {body}
            <p>Salam,<br>Tim ResiSmart</p>
        </body>
        </html>
        """


def _items(**rows) -> str:
    lines = "".join(f"<li>{label}: {value}</li>" for label, value in rows.items())
    return f"<ul>{lines}</ul>"


def tenant_welcome(ctx: dict) -> Tuple[str, str]:
    subject = "Selamat Datang di ResiSmart"
    body = (
        "<p>Terima kasih telah bergabung dengan ResiSmart. "
        "Berikut adalah detail akun Anda:</p>"
        + _items(
            Nama=ctx["name"],
            Kode=ctx["code"],
            Email=ctx["email"],
            Paket=ctx["plan"],
            **{"Tanggal Mulai": ctx["start_date"], "Tanggal Selesai": ctx["end_date"]},
        )
        + "<p>Silakan login ke dashboard Anda untuk mulai menggunakan layanan kami.</p>"
    )
    return subject, _layout(subject, body)


def tenant_updated(ctx: dict) -> Tuple[str, str]:
    subject = "Profil Tenant Diupdate"
    body = "<p>Profil tenant Anda telah diupdate. Berikut adalah detail terbaru:</p>" + _items(
        Nama=ctx["name"],
        Kode=ctx["code"],
        Email=ctx["email"],
        Paket=ctx["plan"],
        Status=ctx["status"],
    )
    return subject, _layout(subject, body)


def tenant_deactivated(ctx: dict) -> Tuple[str, str]:
    subject = "Akun Tenant Dinonaktifkan"
    body = (
        "<p>Akun tenant Anda telah dinonaktifkan. Berikut adalah detail:</p>"
        + _items(Nama=ctx["name"], Kode=ctx["code"], Email=ctx["email"])
        + "<p>Jika Anda memiliki pertanyaan, silakan hubungi tim support kami.</p>"
    )
    return subject, _layout(subject, body)


def subscription_updated(ctx: dict) -> Tuple[str, str]:
    subject = "Paket Langganan Diupdate"
    body = "<p>Paket langganan Anda telah diupdate. Berikut adalah detail terbaru:</p>" + _items(
        Nama=ctx["name"],
        Paket=ctx["plan"],
        Status=ctx["status"],
        **{"Tanggal Mulai": ctx["start_date"], "Tanggal Selesai": ctx["end_date"]},
    )
    return subject, _layout(subject, body)


def property_changed(ctx: dict) -> Tuple[str, str]:
    titles = {
        "created": "Properti Baru Ditambahkan",
        "updated": "Properti Diupdate",
        "deleted": "Properti Dihapus",
    }
    subject = titles[ctx["action"]]
    body = "<p>Detail properti:</p>" + _items(
        Nama=ctx["name"],
        Alamat=f"{ctx['street']}, {ctx['city']}",
        Tipe=ctx["property_type"],
        **{"Jumlah Unit": ctx["total_units"]},
    )
    return subject, _layout(subject, body)


def user_verification(ctx: dict) -> Tuple[str, str]:
    subject = "Verifikasi Email Anda"
    body = f"""
            <p>Halo {ctx.get("name") or ctx["email"]},</p>
            <p>Terima kasih telah mendaftar. Silakan klik link di bawah ini untuk memverifikasi email Anda:</p>
            <a href="{ctx["verify_url"]}" style="display:inline-block;background:#28a745;color:white;padding:10px 20px;
               text-decoration:none;border-radius:4px;">Verifikasi Email</a>
            <p>Link ini akan kadaluarsa dalam 24 jam.</p>
            """
    return subject, _layout(subject, body)


def password_reset(ctx: dict) -> Tuple[str, str]:
    subject = "Reset Password"
    body = f"""
            <p>Anda telah meminta untuk mereset password Anda. Silakan klik link di bawah ini:</p>
            <a href="{ctx["reset_url"]}">Reset Password</a>
            <p>Link ini akan kadaluarsa dalam 10 menit.</p>
            <p>Jika Anda tidak meminta reset password, abaikan email ini.</p>
            """
    return subject, _layout(subject, body)


def user_updated(ctx: dict) -> Tuple[str, str]:
    subject = "Profil Diupdate"
    body = "<p>Profil Anda telah diupdate. Berikut adalah detail terbaru:</p>" + _items(
        Nama=ctx["name"], Email=ctx["email"], Role=ctx["role"]
    )
    return subject, _layout(subject, body)


def user_deactivated(ctx: dict) -> Tuple[str, str]:
    subject = "Akun Dinonaktifkan"
    body = (
        "<p>Akun Anda telah dinonaktifkan. Berikut adalah detail:</p>"
        + _items(Nama=ctx["name"], Email=ctx["email"])
        + "<p>Jika Anda memiliki pertanyaan, silakan hubungi tim support kami.</p>"
    )
    return subject, _layout(subject, body)


def announcement_published(ctx: dict) -> Tuple[str, str]:
    prefix = "Pengumuman Diupdate" if ctx.get("updated") else "Pengumuman Baru"
    subject = f"{prefix}: {ctx['title']}"
    body = f"<p>{ctx['content']}</p>" + _items(
        Properti=ctx["property_name"], Tipe=ctx["type"], Prioritas=ctx["priority"]
    )
    return subject, _layout(prefix, body)


def announcement_deleted(ctx: dict) -> Tuple[str, str]:
    subject = f"Pengumuman Dihapus: {ctx['title']}"
    body = "<p>Pengumuman berikut telah dihapus:</p>" + _items(
        Judul=ctx["title"], Tipe=ctx["type"], Properti=ctx["property_name"]
    )
    return subject, _layout("Pengumuman Dihapus", body)


def complaint_created(ctx: dict) -> Tuple[str, str]:
    subject = f"Keluhan Baru: {ctx['title']}"
    body = "<p>Keluhan baru telah diajukan:</p>" + _items(
        Judul=ctx["title"],
        Kategori=ctx["category"],
        Prioritas=ctx["priority"],
        Pelapor=ctx["resident"],
        Unit=ctx["unit_number"],
    )
    return subject, _layout("Keluhan Baru", body)


def complaint_status(ctx: dict) -> Tuple[str, str]:
    subject = "Status Keluhan Diupdate"
    rows = {"Judul": ctx["title"], "Status": ctx["status"]}
    if ctx.get("notes"):
        rows["Catatan"] = ctx["notes"]
    body = "<p>Status keluhan Anda telah diupdate.</p>" + _items(**rows)
    return subject, _layout(subject, body)


def complaint_comment(ctx: dict) -> Tuple[str, str]:
    subject = f"Komentar Baru pada Keluhan: {ctx['title']}"
    body = f"<p>{ctx['author']} menambahkan komentar:</p><blockquote>{ctx['content']}</blockquote>"
    return subject, _layout("Komentar Baru", body)


def complaint_feedback(ctx: dict) -> Tuple[str, str]:
    subject = f"Feedback Keluhan: {ctx['title']}"
    body = "<p>Resident telah memberikan feedback:</p>" + _items(
        Rating=ctx["rating"], Komentar=ctx.get("comment") or "-"
    )
    return subject, _layout("Feedback Keluhan", body)


def payment_created(ctx: dict) -> Tuple[str, str]:
    subject = "Tagihan Pembayaran Baru"
    body = "<p>Tagihan baru telah dibuat untuk Anda:</p>" + _items(
        Tipe=ctx["type"],
        Jumlah=f"{ctx['currency']} {ctx['amount']:,.2f}",
        Metode=ctx["payment_method"],
        **{"Jatuh Tempo": ctx["due_date"]},
    )
    return subject, _layout(subject, body)


def payment_status(ctx: dict) -> Tuple[str, str]:
    subject = "Status Pembayaran Diupdate"
    body = (
        f"<p>Status pembayaran Anda telah diupdate menjadi: {ctx['status']}</p>"
        + _items(
            Tipe=ctx["type"],
            Jumlah=f"{ctx['currency']} {ctx['amount']:,.2f}",
            Status=ctx["status"],
        )
    )
    return subject, _layout(subject, body)


def maintenance_assigned(ctx: dict) -> Tuple[str, str]:
    subject = f"Tugas Pemeliharaan Baru: {ctx['title']}"
    body = "<p>Anda ditugaskan untuk pemeliharaan berikut:</p>" + _items(
        Properti=ctx["property_name"],
        Tipe=ctx["type"],
        Prioritas=ctx["priority"],
        Mulai=ctx["start_date"],
        Selesai=ctx["end_date"],
    )
    return subject, _layout("Tugas Pemeliharaan Baru", body)


def maintenance_status(ctx: dict) -> Tuple[str, str]:
    subject = "Status Pemeliharaan Diupdate"
    body = "<p>Status tugas pemeliharaan telah diupdate.</p>" + _items(
        Judul=ctx["title"], Status=ctx["status"]
    )
    return subject, _layout(subject, body)


TEMPLATES: Dict[str, Callable[[dict], Tuple[str, str]]] = {
    "tenant_welcome": tenant_welcome,
    "tenant_updated": tenant_updated,
    "tenant_deactivated": tenant_deactivated,
    "subscription_updated": subscription_updated,
    "property_changed": property_changed,
    "user_verification": user_verification,
    "password_reset": password_reset,
    "user_updated": user_updated,
    "user_deactivated": user_deactivated,
    "announcement_published": announcement_published,
    "announcement_deleted": announcement_deleted,
    "complaint_created": complaint_created,
    "complaint_status": complaint_status,
    "complaint_comment": complaint_comment,
    "complaint_feedback": complaint_feedback,
    "payment_created": payment_created,
    "payment_status": payment_status,
    "maintenance_assigned": maintenance_assigned,
    "maintenance_status": maintenance_status,
}


def _escaped(context: dict) -> dict:
    return {
        key: escape(value) if isinstance(value, str) else value for key, value in context.items()
    }


def render(template: str, context: dict) -> Tuple[str, str]:
    """Return (subject, html) for a template.

    The subject is plain text and keeps the raw values; every string that
    reaches the html body is escaped.
    """
    build = TEMPLATES[template]
    subject, _ = build(context)
    _, html = build(_escaped(context))
    return subject, html
