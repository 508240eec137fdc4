"""
Base Compliance Profile - Abstract base class for named pattern sets.

Extend this class to ship region or industry-specific pattern sets.
For example:
    - gdpr_default.py for the built-in EU/US/UK/CA defaults
    - a PCI-DSS profile for card data only
    - a HIPAA profile for health identifiers

Each profile defines:
    - name: Unique identifier for the profile
    - description: Human-readable description
    - get_patterns(): Returns ordered PatternRules in delimited form
"""

from abc import ABC, abstractmethod

from .patterns import PatternRule


class ComplianceProfile(ABC):
    """
    Abstract base class for compliance profiles.

    Subclass this to add new pattern sets without modifying MaskingEngine.

    Example:
        class IndiaProfile(ComplianceProfile):
            @property
            def name(self) -> str:
                return "india"

            @property
            def description(self) -> str:
                return "Indian PII patterns (PAN, Aadhaar)"

            def get_patterns(self) -> list[PatternRule]:
                return [
                    PatternRule(
                        name="pan_card",
                        pattern="/\\b[A-Z]{5}[0-9]{4}[A-Z]\\b/",
                        replacement="***PAN***",
                        description="Indian PAN card number",
                    ),
                ]
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this profile (e.g., 'gdpr_default')."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description of what this profile covers."""
        pass

    @abstractmethod
    def get_patterns(self) -> list[PatternRule]:
        """
        Return the ordered PatternRules for this profile.

        Order matters: later rules see the output of earlier ones.
        """
        pass

    def as_mapping(self) -> dict[str, str]:
        """Pattern -> replacement, in rule order."""
        return {rule.pattern: rule.replacement for rule in self.get_patterns()}

    def __repr__(self) -> str:
        return f"<ComplianceProfile: {self.name}>"
