FRIENDLY_MESSAGES = {
    "IntegrityError": "Data bertentangan dengan data yang sudah ada.",
    "OperationalError": "Database sedang bermasalah. Silakan coba beberapa saat lagi.",
    "DBAPIError": "Database sedang bermasalah. Silakan coba beberapa saat lagi.",
    "ConnectionError": "Tidak dapat terhubung ke layanan pendukung. Silakan coba lagi nanti.",
    "TimeoutError": "Permintaan terlalu lama diproses. Silakan coba lagi nanti.",
    "UnidentifiedImageError": "File gambar tidak dapat dibaca.",
    "OSError": "Gagal menyimpan file. Silakan coba lagi.",
    "ValueError": "Data yang dikirim tidak valid.",
}


def get_friendly_message(error: Exception) -> str:
    # walk the class hierarchy so driver-specific subclasses still match
    for cls in type(error).__mro__:
        msg = FRIENDLY_MESSAGES.get(cls.__name__)
        if msg:
            return msg
    return "Terjadi kesalahan pada server."
