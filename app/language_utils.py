from babel import Locale, UnknownLocaleError

import logging
import re

logger = logging.getLogger(__name__)

BASE_LANGUAGE = "en"


def get_language_name(locale_code: str) -> str:
    """
    Get language name from the locale suffix of a resource bundle using Babel.

    Args:
        locale_code: The part of a bundle filename after the bundle name, e.g.:
                    - Language code (e.g., 'de', 'zh')
                    - Language with country (e.g., 'pt_BR', 'zh_CN')
                    - With script info (e.g., 'zh_Hant_TW')
                    - Hyphenated variants (e.g., 'pt-BR')

    Returns:
        A string with the display name of the language in English, including region if available.
        Returns the original locale_code if parsing fails.
    """
    if locale_code == BASE_LANGUAGE:
        return "Base (English)"

    normalized_code = re.sub(r"-", "_", locale_code)
    try:
        locale = Locale.parse(normalized_code)
        return locale.get_display_name(locale="en")
    except (ValueError, UnknownLocaleError) as e:
        logger.warning(
            f"Could not determine language name for locale '{locale_code}': {e}"
        )
        return locale_code
