"""
Compliance Profiles Package

This package contains named pattern sets for MaskingEngine.

Available profiles:
    - gdpr_default: Built-in defaults (national IDs, IBAN, contact details,
      cards, credentials, network and health identifiers)

To add a new profile:
    1. Create a new file (e.g., pci.py)
    2. Subclass ComplianceProfile
    3. Implement get_patterns() returning delimited PatternRules
    4. Pass it to MaskingEngine.load_profile() or MaskingEngineBuilder

Example:
    # logmask/profiles/pci.py
    from ..base_profile import ComplianceProfile
    from ..patterns import PatternRule

    class PciProfile(ComplianceProfile):
        @property
        def name(self) -> str:
            return "pci"

        @property
        def description(self) -> str:
            return "Card data"

        def get_patterns(self) -> list[PatternRule]:
            return [
                PatternRule(name="pan", pattern="/\\b\\d{16}\\b/", replacement="***CC***"),
            ]
"""

from .gdpr_default import DEFAULT_PROFILE, GdprDefaultProfile, default_patterns

__all__ = ["GdprDefaultProfile", "DEFAULT_PROFILE", "default_patterns"]
