from beanie_paginate.core.exceptions import InvalidOptionsError, PaginationError, UnsupportedOperationError
from beanie_paginate.options import Offset, PageNumber, PaginateOptions, Populate
from beanie_paginate.paginator import PaginatedResult, Paginator, paginate
from beanie_paginate.plugin import PaginateMixin, install
from beanie_paginate.sources import BeanieSource, DocumentSource, MotorSource, as_source

__all__ = [
    "BeanieSource",
    "DocumentSource",
    "InvalidOptionsError",
    "MotorSource",
    "Offset",
    "PageNumber",
    "PaginateMixin",
    "PaginateOptions",
    "PaginatedResult",
    "PaginationError",
    "Paginator",
    "Populate",
    "UnsupportedOperationError",
    "as_source",
    "install",
    "paginate",
]
