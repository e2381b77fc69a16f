"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages, and
provides a small addon tree shared by index, workspace and consumer tests.
"""

import sys
import textwrap
from collections.abc import Callable, Generator
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

# Insert local src directory at the beginning of sys.path
# This ensures that the local odoolens package is used, not any installed one
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

# Force reimport of odoolens modules if already imported
for module_name in list(sys.modules.keys()):
    if module_name.startswith("odoolens"):
        del sys.modules[module_name]

from odoolens.config.models import OdooLensConfig, ResolverConfig  # noqa: E402
from odoolens.workspace import Workspace  # noqa: E402

WriteFile = Callable[[str, str], Path]

BASE_MANIFEST = """
{
    'name': 'Base',
    'version': '17.0.1.0',
    'depends': [],
}
"""

PARTNER_SOURCE = """
from odoo import api, fields, models


class ResPartner(models.Model):
    _name = 'res.partner'
    _description = 'Contact'

    name = fields.Char(string='Name', required=True)
    email = fields.Char()
    company_id = fields.Many2one('res.company', string='Company')
    child_ids = fields.One2many('res.partner', 'parent_id')

    def _compute_display_name(self):
        pass

    def write(self, vals):
        return super().write(vals)


class ResCompany(models.Model):
    _name = 'res.company'
    _description = 'Companies'

    name = fields.Char(required=True)
    currency_id = fields.Many2one('res.currency')
"""

MAIL_MANIFEST = """
{
    'name': 'Discuss',
    'version': '17.0.1.2',
    'depends': ['base'],
}
"""

MAIL_SOURCE = """
from odoo import fields, models


class MailThread(models.AbstractModel):
    _name = 'mail.thread'
    _description = 'Email Thread'

    message_ids = fields.One2many('mail.message', 'res_id')

    def message_post(self, body=''):
        pass
"""

SALE_MANIFEST = """
{
    'name': 'Sales',
    'version': '17.0.1.0',
    'depends': ['base', 'mail'],
}
"""

SALE_SOURCE = """
from odoo import api, fields, models


class SaleOrder(models.Model):
    _name = 'sale.order'
    _description = 'Sales Order'
    _inherit = ['mail.thread']

    partner_id = fields.Many2one('res.partner', required=True)
    amount_total = fields.Monetary(compute='_compute_amount')
    partner_email = fields.Char(related='partner_id.email')

    @api.depends('partner_id')
    def _compute_amount(self):
        \"\"\"Sum the order lines.\"\"\"
        pass
"""


@pytest.fixture
def write_file(tmp_path: Path) -> WriteFile:
    """Write dedented text to a path relative to tmp_path, creating parents."""

    def _write(relative: str, content: str) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content).lstrip("\n"))
        return path

    return _write


@pytest.fixture
def addons_root(tmp_path: Path, write_file: WriteFile) -> Path:
    """Three addons: base (partner, company), mail (thread mixin), sale (order)."""
    write_file("base/__manifest__.py", BASE_MANIFEST)
    write_file("base/__init__.py", "from . import models\n")
    write_file("base/models/res_partner.py", PARTNER_SOURCE)
    write_file("mail/__manifest__.py", MAIL_MANIFEST)
    write_file("mail/models/mail_thread.py", MAIL_SOURCE)
    write_file("sale/__manifest__.py", SALE_MANIFEST)
    write_file("sale/models/sale_order.py", SALE_SOURCE)
    return tmp_path.resolve()


@pytest.fixture
def executor() -> Generator[ThreadPoolExecutor, None, None]:
    pool = ThreadPoolExecutor(max_workers=2, thread_name_prefix="test-worker")
    yield pool
    pool.shutdown(wait=True, cancel_futures=True)


@pytest.fixture
def test_config() -> OdooLensConfig:
    """Config with a field wait long enough that merges never fall back in tests."""
    return OdooLensConfig(resolver=ResolverConfig(field_wait_ms=5000))


@pytest.fixture
def workspace(addons_root: Path, test_config: OdooLensConfig) -> Generator[Workspace, None, None]:
    """Opened workspace over ``addons_root`` with the first build finished."""
    ws = Workspace(addons_root, config=test_config).open()
    ws.rebuild().result(timeout=10)
    yield ws
    ws.close()
