"""
Реквизиты оплаты переводом: короткий код для комментария к переводу
и ссылка на приложение банка с подставленной суммой.

Ссылка MBank содержит в якоре EMV-payload (TLV: тег из 2 цифр,
длина из 2 цифр, значение). Сумма лежит в теге 54, контрольная сумма
CRC16-CCITT - в теге 63.
"""
import re
import secrets
from typing import List, Optional, Tuple
from urllib.parse import quote, unquote, urlsplit, urlunsplit

# без 0/O и 1/I, чтобы код легко переписать с экрана
CODE_ALPHABET = "23456789ABCDEFGHJKLMNPQRSTUVWXYZ"
CODE_LENGTH = 4

BANK_NUMBER_RE = re.compile(r"^996\d{9}$")
PHONE_IN_PAYLOAD_RE = re.compile(r"996\d{9}")

AMOUNT_TAG = "54"
CRC_TAG = "63"

EmvField = Tuple[str, str]


def build_payment_reference(prefix: str = "BX") -> str:
    """
    Код платежа вида BX-7K3Q.
    Только для глаз кассира, для сверки не используется.
    """
    suffix = "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))
    return f"{prefix}-{suffix}"


def normalize_bank_number(value: Optional[str]) -> Optional[str]:
    digits = re.sub(r"\D", "", value or "")
    if not BANK_NUMBER_RE.match(digits):
        return None
    return digits


def parse_emv_payload(payload: str) -> Optional[List[EmvField]]:
    data = payload.strip().encode("utf-8")
    fields: List[EmvField] = []
    cursor = 0

    while cursor < len(data):
        if cursor + 4 > len(data):
            return None
        tag = data[cursor:cursor + 2].decode("utf-8", errors="replace")
        length_text = data[cursor + 2:cursor + 4].decode("utf-8", errors="replace")
        if not (len(length_text) == 2 and length_text.isdigit()):
            return None

        start = cursor + 4
        end = start + int(length_text)
        if end > len(data):
            return None

        fields.append((tag, data[start:end].decode("utf-8", errors="replace")))
        cursor = end

    return fields


def serialize_emv_payload(fields: List[EmvField]) -> Optional[str]:
    chunks = []
    for tag, value in fields:
        if not (len(tag) == 2 and tag.isdigit()):
            return None
        raw = value.encode("utf-8")
        if len(raw) > 99:
            return None
        chunks.append(f"{tag}{len(raw):02d}".encode("utf-8") + raw)
    return b"".join(chunks).decode("utf-8")


def crc16_ccitt(text: str) -> str:
    crc = 0xFFFF
    for byte in text.encode("utf-8"):
        crc ^= byte << 8
        for _ in range(8):
            if crc & 0x8000:
                crc = ((crc << 1) ^ 0x1021) & 0xFFFF
            else:
                crc = (crc << 1) & 0xFFFF
    return f"{crc:04X}"


def _format_amount(amount: int, existing: str) -> str:
    # сохраняем формат суммы из шаблона
    if existing.isdigit():
        if len(existing) >= 4:
            return str(amount * 100).zfill(len(existing))
        return str(amount)
    if re.fullmatch(r"\d+\.\d{1,2}", existing):
        return f"{amount:.2f}"
    return str(amount * 100)


def build_bank_pay_url(
    total_kgs: int,
    bank_number: Optional[str] = None,
    template: Optional[str] = None,
) -> Optional[str]:
    """
    Подставляет сумму (и номер получателя) в ссылку-шаблон банка
    и пересчитывает CRC.

    None - если шаблона нет или передан невалидный номер.
    Если payload не разбирается, возвращается шаблон как есть.
    """
    template = (template or "").strip()
    if not template:
        return None

    normalized_number = None
    if bank_number:
        normalized_number = normalize_bank_number(bank_number)
        if normalized_number is None:
            return None

    amount = max(0, int(round(total_kgs or 0)))
    if amount <= 0:
        return template

    parts = urlsplit(template)
    if not parts.fragment:
        return template

    payload = unquote(parts.fragment).strip()
    if normalized_number:
        payload = PHONE_IN_PAYLOAD_RE.sub(normalized_number, payload)

    fields = parse_emv_payload(payload)
    if fields is None:
        return template

    fields = [f for f in fields if f[0] != CRC_TAG]
    amount_index = next((i for i, f in enumerate(fields) if f[0] == AMOUNT_TAG), None)
    existing = fields[amount_index][1] if amount_index is not None else ""
    amount_value = _format_amount(amount, existing)

    if amount_index is not None:
        fields[amount_index] = (AMOUNT_TAG, amount_value)
    else:
        fields.append((AMOUNT_TAG, amount_value))

    serialized = serialize_emv_payload(fields)
    if serialized is None:
        return template

    seeded = f"{serialized}{CRC_TAG}04"
    fragment = quote(f"{seeded}{crc16_ccitt(seeded)}", safe="")
    return urlunsplit((parts.scheme, parts.netloc, parts.path, parts.query, fragment))
