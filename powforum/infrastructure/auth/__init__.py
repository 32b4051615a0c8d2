# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from .session_resolver import SessionResolver, SessionTokenSigner

__all__ = ["SessionResolver", "SessionTokenSigner"]
