# -*- coding: utf-8 -*-
from __future__ import annotations

import sys

from spellpop.main import main

if __name__ == "__main__":
    sys.exit(main(sys.argv))
