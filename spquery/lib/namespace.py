#!/usr/bin/env python
from typing import Dict
from typing import Optional

nsmap: Dict[str, str] = {
    "soap": "http://schemas.xmlsoap.org/soap/envelope/",
    "xsi": "http://www.w3.org/2001/XMLSchema-instance",
    "xsd": "http://www.w3.org/2001/XMLSchema",
    "sp": "http://schemas.microsoft.com/sharepoint/soap/",
    "rs": "urn:schemas-microsoft-com:rowset",
    "z": "#RowsetSchema",
    "dt": "uuid:C2F41010-65B3-11d1-A29F-00AA00C14882",
    "s": "uuid:BDC6E3F0-6DA3-11d1-A2A3-00C04FD7F0F2",
}


def ns(prefix: str, tag: Optional[str] = None) -> str:
    name = "{%s}" % nsmap[prefix]
    if tag is not None:
        name = "%s%s" % (name, tag)
    return name
