"""Language selector normalisation for clone requests."""

from __future__ import annotations


class LanguageMapper:
    """Maps user-facing language selectors onto the backend's locale tags."""

    # Backend locale tags to human-readable names
    LANGUAGE_NAMES: dict[str, str] = {
        "zh-CN": "Chinese (Simplified)",
        "en-US": "English (US)",
        "ja-JP": "Japanese",
        "ko-KR": "Korean",
    }

    # Short codes and names accepted in place of a locale tag
    ALIASES: dict[str, str] = {
        "zh": "zh-CN",
        "cn": "zh-CN",
        "chinese": "zh-CN",
        "mandarin": "zh-CN",
        "en": "en-US",
        "english": "en-US",
        "ja": "ja-JP",
        "jp": "ja-JP",
        "japanese": "ja-JP",
        "ko": "ko-KR",
        "kr": "ko-KR",
        "korean": "ko-KR",
    }

    def __init__(self, supported: list[str] | None = None) -> None:
        """Initialize mapper.

        Args:
            supported: Locale tags accepted by the backend; defaults to all known tags
        """
        self.supported = list(supported) if supported else list(self.LANGUAGE_NAMES)
        self._by_lower = {tag.lower(): tag for tag in self.supported}

    def normalize(self, selector: str) -> str | None:
        """Resolve a selector to a supported locale tag.

        Matching is case-insensitive and accepts ``_`` as a separator.

        Args:
            selector: Locale tag, short code, or language name

        Returns:
            The canonical locale tag, or None if the selector is not supported
        """
        key = selector.strip().replace("_", "-").lower()
        if not key:
            return None
        if key in self._by_lower:
            return self._by_lower[key]
        tag = self.ALIASES.get(key)
        if tag and tag in self.supported:
            return tag
        return None

    def get_supported_languages(self) -> dict[str, str]:
        """Get supported locale tags and their names."""
        return {tag: self.LANGUAGE_NAMES.get(tag, tag) for tag in self.supported}

    def aliases_for(self, tag: str) -> list[str]:
        """List the aliases that resolve to a locale tag."""
        return sorted(alias for alias, target in self.ALIASES.items() if target == tag)

    def is_supported(self, selector: str) -> bool:
        """Check if a selector resolves to a supported locale tag."""
        return self.normalize(selector) is not None
