"""Campus Admin Backend.

Institution and department administration for schools and universities,
including department configuration inheritance and policy enforcement.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
