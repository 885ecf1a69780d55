"""Tests for the cashflow command-line interface."""

import json

import pytest
from click.testing import CliRunner
from openpyxl import load_workbook

from cashflow_ocr.cli import cli

INVOICE_TEXT = "FACTURA DE VENTA\nNIT 900.123.456-7\nTOTAL A PAGAR: $ 45.000"


def last_json(output):
    return json.loads(output.strip().splitlines()[-1])


class TestCli:

    @pytest.fixture(autouse=True)
    def prepare(self, tmp_path, monkeypatch):
        self.runner = CliRunner()
        self.tmp_path = tmp_path
        self.data_dir = tmp_path / 'data'
        self.outbox = tmp_path / 'outbox'

        async def fake_recognize(processor, image_path):
            return INVOICE_TEXT

        monkeypatch.setattr('cashflow_ocr.ocr.OCRProcessor.recognize', fake_recognize)

    def invoke(self, *args):
        return self.runner.invoke(cli, [
            '--data-dir', str(self.data_dir),
            '--outbox', str(self.outbox),
            *args,
        ])

    def media(self, name, content=b'image bytes'):
        path = self.tmp_path / name
        path.write_bytes(content)
        return path

    def test_process_prints_result(self):
        path = self.media('factura.jpg')

        result = self.invoke('process', str(path), '--source', 'dm', '--sender', '+573001234567',
                             '--message-id', 'wamid.9', '--received-at', '2026-10-18T15:30:00-05:00')

        assert result.exit_code == 0
        data = last_json(result.output)
        assert data['dedup'] is False
        assert data['category'] == 'FACTURA'
        assert data['amount_cop'] == 45000
        assert data['day_key'] == '2026-10-18'
        assert data['totals']['facturas_total'] == 45000
        assert data['message_id'] == 'wamid.9'
        assert data['notification_text'].startswith('FACTURA detectada')
        assert len(list(self.outbox.iterdir())) == 1

    def test_process_twice_reports_duplicate(self):
        path = self.media('factura.jpg')
        self.invoke('process', str(path))

        result = self.invoke('process', str(path))

        assert result.exit_code == 0
        data = last_json(result.output)
        assert data['dedup'] is True
        assert data['category'] == 'DUPLICATE'

    def test_no_notify(self):
        result = self.invoke('process', str(self.media('nota.txt')), '--no-notify')

        assert result.exit_code == 0
        assert last_json(result.output)['category'] == 'UNKNOWN'
        assert not self.outbox.exists()

    def test_missing_argument_is_usage_error(self):
        result = self.invoke('process')

        assert result.exit_code == 2

    def test_bad_received_at_is_usage_error(self):
        result = self.invoke('process', str(self.media('a.jpg')), '--received-at', 'yesterday')

        assert result.exit_code == 2

    def test_missing_file_fails(self):
        result = self.invoke('process', str(self.tmp_path / 'missing.jpg'))

        assert result.exit_code == 1
        assert 'Error:' in result.output

    def test_totals_for_day(self):
        self.invoke('process', str(self.media('factura.jpg')), '--received-at', '2026-10-18T15:30:00-05:00')

        result = self.invoke('totals', '--day', '2026-10-18')

        assert result.exit_code == 0
        data = last_json(result.output)
        assert data['2026-10-18']['facturas_total'] == 45000
        assert data['2026-10-18']['counts']['facturas'] == 1

    def test_totals_all_empty(self):
        result = self.invoke('totals', '--all')

        assert result.exit_code == 0
        assert last_json(result.output) == {}

    def test_rebuild_totals(self):
        self.invoke('process', str(self.media('factura.jpg')), '--received-at', '2026-10-18T15:30:00-05:00')
        (self.data_dir / 'daily-totals.json').unlink()

        result = self.invoke('rebuild-totals')

        assert result.exit_code == 0
        assert last_json(result.output)['2026-10-18']['facturas_total'] == 45000

    def test_run_inbox(self):
        inbox = self.tmp_path / 'inbox'
        inbox.mkdir()
        (inbox / 'a.jpg').write_bytes(b'a')
        (inbox / 'b.txt').write_bytes(b'b')

        result = self.invoke('run', '--inbox', str(inbox))

        assert result.exit_code == 0
        data = last_json(result.output)
        assert data['total'] == 2
        assert data['processed'] == 2
        assert sorted(p.name for p in (inbox / 'processed').iterdir()) == ['a.jpg', 'b.txt']

    def test_export(self):
        self.invoke('process', str(self.media('factura.jpg')), '--received-at', '2026-10-18T15:30:00-05:00')
        self.invoke('process', str(self.media('nota.txt')))
        out = self.tmp_path / 'reports' / 'ledger.xlsx'

        result = self.invoke('export', '--out', str(out))

        assert result.exit_code == 0
        workbook = load_workbook(out)
        assert workbook.sheetnames == ['Totales diarios', 'Facturas', 'Transacciones', 'No clasificadas']
        assert workbook['Totales diarios'].cell(row=4, column=1).value == '2026-10-18'
        assert workbook['Totales diarios'].cell(row=4, column=2).value == 45000
        assert workbook['Facturas'].cell(row=2, column=5).value == 45000
        assert workbook['No clasificadas'].max_row == 2

    def test_run_uses_configured_inbox(self):
        inbox = self.tmp_path / 'entrada'
        inbox.mkdir()
        (inbox / 'a.jpg').write_bytes(b'a')

        result = self.invoke('--inbox-dir', str(inbox), 'run')

        assert result.exit_code == 0
        assert last_json(result.output)['processed'] == 1
        assert (inbox / 'processed' / 'a.jpg').exists()

    def test_run_without_inbox_is_usage_error(self):
        result = self.invoke('--inbox-dir', str(self.tmp_path / 'nowhere'), 'run')

        assert result.exit_code == 2

    def test_ocr_failure_explains_retry_is_blocked(self, monkeypatch):
        async def broken_recognize(processor, image_path):
            raise RuntimeError("tesseract is not installed")

        monkeypatch.setattr('cashflow_ocr.ocr.OCRProcessor.recognize', broken_recognize)
        path = self.media('factura.jpg')

        result = self.invoke('process', str(path))

        assert result.exit_code == 1
        assert 'tesseract is not installed' in result.output
        assert 'DUPLICATE' in result.output

        retry = self.invoke('process', str(path))
        assert last_json(retry.output)['category'] == 'DUPLICATE'
