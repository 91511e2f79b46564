# Copyright 2026 Pramod Kumar Voola
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

# -----------------------------------------------------------------------------
# AUTH - SHARED SECRET
# -----------------------------------------------------------------------------
# Builds are triggered with ?token=<TOKEN>. A wrong or missing token is
# answered exactly like an unknown route so the endpoint does not reveal
# itself.
# -----------------------------------------------------------------------------

import hmac

from rich.console import Console

console = Console()


class AuthFailure(Exception):
    """Raised when the build token is missing or wrong."""

    pass


def verify_token(expected: str, supplied: str | None) -> None:
    """
    Require `supplied` to equal the configured token exactly.

    Raises:
        AuthFailure: Token missing or different.
    """
    if not supplied or not hmac.compare_digest(supplied.encode(), expected.encode()):
        console.print("[yellow][AUTH] Rejected build trigger with bad token[/yellow]")
        raise AuthFailure("Invalid token")
