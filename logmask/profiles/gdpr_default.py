"""
GDPR Default Profile - Built-in masking patterns.

This profile is loaded when MaskingEngine is created without explicit
patterns. It covers identifiers common in EU, US, UK and Canadian logs.

Patterns covered:
    - National IDs (Finnish HETU, US SSN, UK NI, Canadian SIN)
    - Finnish IBAN
    - Phone numbers (E.164), email addresses, dates of birth
    - Passport numbers, credit card numbers
    - Bearer tokens and API keys
    - MAC, IPv4 and IPv6 addresses
    - Vehicle registration plates
    - UK sort code and Canadian transit bank accounts
    - US Medicare and European Health Insurance Card numbers
"""

from ..base_profile import ComplianceProfile
from ..patterns import PatternRule


class GdprDefaultProfile(ComplianceProfile):
    """
    Default profile mapping each category to a ***LABEL*** placeholder.

    Several rules are anchored (^...$) and therefore only match when the
    whole value is the identifier, as is typical for context fields.
    """

    @property
    def name(self) -> str:
        return "gdpr_default"

    @property
    def description(self) -> str:
        return "GDPR defaults: national IDs, IBAN, contact details, cards, credentials, network and health identifiers"

    def get_patterns(self) -> list[PatternRule]:
        return [
            # Finnish personal identity code (HETU)
            PatternRule(
                name="hetu",
                pattern=r"/\b\d{6}[-+A]?\d{3}[A-Z]\b/u",
                replacement="***HETU***",
                description="Finnish personal identity code",
            ),
            # US Social Security Number (3-2-4 digits)
            PatternRule(
                name="us_ssn",
                pattern=r"/^\d{3}-\d{2}-\d{4}$/",
                replacement="***USSSN***",
                description="US Social Security Number",
            ),
            # Finnish IBAN, grouped with optional spaces
            PatternRule(
                name="iban_fi",
                pattern=r"/^FI\d{2}(?: ?\d{4}){3} ?\d{2}$/u",
                replacement="***IBAN***",
                description="Finnish IBAN",
            ),
            # Finnish IBAN, compact
            PatternRule(
                name="iban_fi_compact",
                pattern=r"/^FI\d{16}$/u",
                replacement="***IBAN***",
                description="Finnish IBAN without spaces",
            ),
            # International phone numbers (E.164)
            PatternRule(
                name="phone",
                pattern=r"/^\+\d{1,3}[\s-]?\d{1,4}[\s-]?\d{1,4}[\s-]?\d{1,9}$/",
                replacement="***PHONE***",
                description="E.164 phone number",
            ),
            PatternRule(
                name="email",
                pattern=r"/^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$/",
                replacement="***EMAIL***",
                description="Email address",
            ),
            # Date of birth (YYYY-MM-DD)
            PatternRule(
                name="dob_iso",
                pattern=r"/^(19|20)\d{2}-[01]\d\-[0-3]\d$/",
                replacement="***DOB***",
                description="Date of birth, ISO format",
            ),
            # Date of birth (DD/MM/YYYY)
            PatternRule(
                name="dob_eu",
                pattern=r"/^[0-3]\d\/[01]\d\/(19|20)\d{2}$/",
                replacement="***DOB***",
                description="Date of birth, day first",
            ),
            # Passport numbers (A followed by 6 digits)
            PatternRule(
                name="passport",
                pattern=r"/^A\d{6}$/",
                replacement="***PASSPORT***",
                description="Passport number",
            ),
            # Well-known test card numbers (Visa, MC, Amex, Discover)
            PatternRule(
                name="credit_card_test",
                pattern=r"/^(4111 1111 1111 1111|5500-0000-0000-0004|340000000000009|6011000000000004)$/",
                replacement="***CC***",
                description="Test credit card numbers",
            ),
            # Generic 16-digit card number
            PatternRule(
                name="credit_card",
                pattern=r"/\b[0-9]{16}\b/u",
                replacement="***CC***",
                description="16-digit card number",
            ),
            # Bearer tokens (at least 10 characters after Bearer)
            PatternRule(
                name="bearer_token",
                pattern=r"/^Bearer [A-Za-z0-9\-\._~\+\/]{10,}$/",
                replacement="***TOKEN***",
                description="Bearer token",
            ),
            # API keys (sk_live/sk_test, or any 20+ character key)
            PatternRule(
                name="api_key",
                pattern=r"/^(sk_(live|test)_[A-Za-z0-9]{16,}|[A-Za-z0-9\-_]{20,})$/",
                replacement="***APIKEY***",
                description="API key",
            ),
            PatternRule(
                name="mac_address",
                pattern=r"/^([0-9A-Fa-f]{2}[:-]){5}([0-9A-Fa-f]{2})$/",
                replacement="***MAC***",
                description="MAC address",
            ),
            PatternRule(
                name="ipv4",
                pattern=r"/\b(?:(?:25[0-5]|2[0-4]\d|[01]?\d\d?)\.){3}(?:25[0-5]|2[0-4]\d|[01]?\d\d?)\b/",
                replacement="***IPv4***",
                description="IPv4 address",
            ),
            # Vehicle plates (ABC-1234, ABC1234)
            PatternRule(
                name="vehicle_plate",
                pattern=r"/\b[A-Z]{2,3}[-\s]?\d{3,4}\b/",
                replacement="***VEHICLE***",
                description="Vehicle registration plate",
            ),
            # Vehicle plates, reversed (123-ABC)
            PatternRule(
                name="vehicle_plate_reversed",
                pattern=r"/\b\d{3,4}[-\s]?[A-Z]{2,3}\b/",
                replacement="***VEHICLE***",
                description="Vehicle registration plate, digits first",
            ),
            # UK National Insurance number (2 letters, 6 digits, 1 letter)
            PatternRule(
                name="uk_ni",
                pattern=r"/\b[A-Z]{2}\d{6}[A-Z]\b/",
                replacement="***UKNI***",
                description="UK National Insurance number",
            ),
            # Canadian Social Insurance Number (3-3-3)
            PatternRule(
                name="ca_sin",
                pattern=r"/\b\d{3}[-\s]\d{3}[-\s]\d{3}\b/",
                replacement="***CASIN***",
                description="Canadian Social Insurance Number",
            ),
            # UK sort code + account number (6 + 8 digits)
            PatternRule(
                name="uk_bank",
                pattern=r"/\b\d{6}[-\s]\d{8}\b/",
                replacement="***UKBANK***",
                description="UK bank account",
            ),
            # Canadian transit + account number (5 + 7-12 digits)
            PatternRule(
                name="ca_bank",
                pattern=r"/\b\d{5}[-\s]\d{7,12}\b/",
                replacement="***CABANK***",
                description="Canadian bank account",
            ),
            PatternRule(
                name="medicare",
                pattern=r"/\b\d{3}[-\s]\d{2}[-\s]\d{4}\b/",
                replacement="***MEDICARE***",
                description="US Medicare number",
            ),
            # European Health Insurance Card (country code first)
            PatternRule(
                name="ehic",
                pattern=r"/\b\d{2}[-\s]\d{4}[-\s]\d{4}[-\s]\d{4}[-\s]\d{1,4}\b/",
                replacement="***EHIC***",
                description="European Health Insurance Card",
            ),
            PatternRule(
                name="ipv6",
                pattern=r"/\b[0-9a-fA-F]{1,4}:[0-9a-fA-F:]{7,35}\b/",
                replacement="***IPv6***",
                description="IPv6 address",
            ),
        ]


# Export the default profile
DEFAULT_PROFILE = GdprDefaultProfile()


def default_patterns() -> dict[str, str]:
    """The default profile as an ordered pattern -> replacement mapping."""
    return DEFAULT_PROFILE.as_mapping()
