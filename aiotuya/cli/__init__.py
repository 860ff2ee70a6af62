# SPDX-FileCopyrightText: the aiotuya contributors
#
# SPDX-License-Identifier: MIT

"""Container module for command line utilities bundled with aiotuya.

These modules are not considered to be a part of the aiotuya API, and are thus
subject to change even when the project reaches a stable version number.
"""
