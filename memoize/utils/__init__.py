# Copyright 2020 Ram Rachum and collaborators.
# This program is distributed under the MIT license.

from .weak_key_identity_dict import WeakKeyIdentityDict
