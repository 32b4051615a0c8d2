# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

import sys

from powforum.app import main

sys.exit(main())
