"""
Security classification of beacon / probe-response frames from the capability
field and the RSN / WPA vendor information elements.
"""

import struct
from enum import Enum
from typing import Tuple

from hcxmap.parsers.elements import TAG_RSN, TAG_VENDOR, iter_elements

CAP_PRIVACY = 0x0010

# beacon fixed parameters: timestamp (8) + interval (2) + capability (2)
FIXED_PARAMS_LEN = 12

AKM_PSK = 2
AKM_SAE = 8

WPA_OUI = b"\x00\x50\xf2"
WPA_OUI_TYPE = 1


class SecurityKind(str, Enum):
    OPEN = "Open"
    WEP = "WEP"
    WPA = "WPA"
    WPA2 = "WPA2"
    WPA3 = "WPA3"
    WPA2WPA3 = "WPA2/WPA3"
    UNKNOWN = "Unknown"

    def __str__(self) -> str:
        return self.value


def parse_rsn_akms(payload: bytes) -> Tuple[bool, bool]:
    """
    Scan the AKM suite list of an RSN element payload.

    Layout: version (2), group cipher (4), pairwise count (2), pairwise
    suites (4 each), AKM count (2), AKM suites (4 each). Parsing stops at the
    first field the payload is too short to hold.

    Returns
    -------
    (has_psk, has_sae)
    """
    has_psk = has_sae = False
    if len(payload) < 8:
        return has_psk, has_sae

    (pairwise_count,) = struct.unpack_from("<H", payload, 6)
    akm_offset = 8 + pairwise_count * 4
    if len(payload) < akm_offset + 2:
        return has_psk, has_sae

    (akm_count,) = struct.unpack_from("<H", payload, akm_offset)
    for i in range(akm_count):
        suite = akm_offset + 2 + i * 4
        if len(payload) < suite + 4:
            break
        akm_type = payload[suite + 3]
        if akm_type == AKM_PSK:
            has_psk = True
        elif akm_type == AKM_SAE:
            has_sae = True
    return has_psk, has_sae


def is_wpa_vendor_element(payload: bytes) -> bool:
    """True for the legacy WPA vendor element (OUI 00:50:F2, type 1)."""
    return len(payload) >= 8 and payload[:3] == WPA_OUI and payload[3] == WPA_OUI_TYPE


def classify_security(body: bytes, capabilities: int) -> SecurityKind:
    """
    Derive the security scheme of a beacon or probe response.

    Parameters
    ----------
    body
        Management frame body (everything after the 24-byte MAC header),
        starting with the fixed parameters.
    capabilities
        16-bit capability information field.

    Returns
    -------
    SecurityKind
        Never raises; malformed element data degrades to a weaker verdict.
    """
    if not capabilities & CAP_PRIVACY:
        return SecurityKind.OPEN

    if len(body) < FIXED_PARAMS_LEN:
        return SecurityKind.UNKNOWN

    has_rsn = has_wpa = has_psk = has_sae = False
    for tag, payload in iter_elements(body, FIXED_PARAMS_LEN):
        if tag == TAG_RSN:
            has_rsn = True
            psk, sae = parse_rsn_akms(payload)
            has_psk |= psk
            has_sae |= sae
        elif tag == TAG_VENDOR and is_wpa_vendor_element(payload):
            has_wpa = True

    return resolve_security(True, has_rsn, has_psk, has_sae, has_wpa)


def resolve_security(
    privacy: bool, has_rsn: bool, has_psk: bool, has_sae: bool, has_wpa: bool
) -> SecurityKind:
    """Fixed precedence over the element findings."""
    if not privacy:
        return SecurityKind.OPEN
    if has_rsn:
        if has_sae and has_psk:
            return SecurityKind.WPA2WPA3
        if has_sae:
            return SecurityKind.WPA3
        return SecurityKind.WPA2
    if has_wpa:
        return SecurityKind.WPA
    return SecurityKind.WEP
