# invoice_app.py
# pip install -e .   (flask, reportlab, pydantic, python-dotenv)

import io
import logging
import re
from datetime import datetime, timedelta, timezone

from flask import Flask, current_app, jsonify, render_template_string, request, send_file
from pydantic import ValidationError

from invoicing.calculator import UNITS
from invoicing.config import Settings, load_settings
from invoicing.layout import LayoutOptions, build_layout
from invoicing.render import PdfRenderer, RenderError
from invoicing.schemas import InvoiceRequest
from invoicing.store import DuplicateInvoiceError, InvoiceStore, StoreError

logger = logging.getLogger(__name__)

IST = timezone(timedelta(hours=5, minutes=30))
RECENT_LIMIT = 50
DB_UNAVAILABLE = "Database not available. Set INVOICE_DB to a writable SQLite file to use this feature."


def today_ist():
    return datetime.now(IST).date().isoformat()


def _filename_safe(text):
    return re.sub(r"[^a-zA-Z0-9]", "_", text)


def invoice_filename(bill_to, invoice_no):
    return f"invoice_{_filename_safe(bill_to)}_{_filename_safe(invoice_no)}.pdf"


def layout_options(settings):
    return LayoutOptions(
        min_rows=settings.min_table_rows,
        wrap_item_names=settings.wrap_item_names,
        currency_symbol=settings.currency_symbol,
    )


# -----------------------------
# HTML FORM
# -----------------------------
FORM_HTML = """
<!DOCTYPE html>
<html>
<head>
<title>Invoice Generator</title>
<meta name="viewport" content="width=device-width, initial-scale=1">
<style>
* { box-sizing: border-box; }
body { font-family: Arial, sans-serif; background:#f4f4f4; margin:0; padding:15px; }
.container { background:#fff; padding:20px; max-width:900px; margin:auto; }
input, select, textarea { padding:6px; margin:4px 0; }
textarea { width:100%; }
.item { display:grid; grid-template-columns: 3fr 1fr 1fr 1fr 1fr 1fr auto; gap:6px; }
.item input, .item select { width:100%; }
.message { padding:8px; margin:8px 0; }
.success { background:#e6f6e6; }
.error { background:#fbe4e4; }
#editing { display:none; color:#a05a00; }
button { padding:8px 15px; margin-top:10px; }
</style>
</head>
<body>
<div class="container">
<h2>{{ business.name }} - Invoice Generator</h2>

{% if db_available %}
<div>
<input id="searchInvoice" placeholder="Invoice number">
<button type="button" onclick="searchInvoice()">Load Invoice</button>
<button type="button" onclick="clearForm()">New Invoice</button>
</div>
{% else %}
<p><i>PDF-only mode: invoices are not saved.</i></p>
{% endif %}
<div id="message"></div>
<p id="editing">Editing invoice <span id="editingNo"></span></p>

<form id="form">
<input type="hidden" id="isEditing" value="false">
<input type="hidden" id="originalInvoiceNo" value="">

<b>Bill To</b><br>
<textarea name="billto" rows="3" required></textarea><br>

<b>Invoice No</b> <input name="invoice" required>
<b>Date</b> <input name="date" type="date" value="{{ today }}" required>
<b>Due Date</b> <input name="duedate" type="date" value="{{ today }}">
<b>Received</b> <input name="received" type="number" step="0.01" value="0"><br>

<h3>Items</h3>
<div id="items"></div>
<button type="button" onclick="addItem()">Add Item</button>

<h3>Total: <span id="total">0.00</span></h3>
<button type="submit">Save &amp; Download PDF</button>
</form>
</div>

<script>
const UNITS = {{ units|tojson }};

function calculateDiscount(amount, discount) {
    if (!discount || discount.trim() === '') return 0;
    discount = discount.trim();
    if (discount.endsWith('%')) {
        return (amount * (parseFloat(discount.slice(0, -1)) || 0)) / 100;
    }
    return parseFloat(discount) || 0;
}

function showMessage(text, type) {
    document.getElementById('message').innerHTML = '<div class="message ' + type + '"></div>';
    document.querySelector('#message div').textContent = text;
}

function update() {
    let total = 0;
    document.querySelectorAll('.item').forEach(row => {
        const qty = parseFloat(row.querySelector('[name=qty]').value) || 0;
        const rate = parseFloat(row.querySelector('[name=rate]').value) || 0;
        const gross = qty * rate;
        const net = gross - calculateDiscount(gross, row.querySelector('[name=discount]').value);
        row.querySelector('[name=amount]').value = net.toFixed(2);
        total += net;
    });
    document.getElementById('total').textContent = total.toFixed(2);
}

function addItem(values) {
    values = values || {};
    const row = document.createElement('div');
    row.className = 'item';
    const options = UNITS.map(u => '<option value="' + u + '">' + u + '</option>').join('');
    row.innerHTML =
        '<input name="name" placeholder="Item name">' +
        '<input name="qty" type="number" step="0.01" placeholder="Qty">' +
        '<select name="unit">' + options + '</select>' +
        '<input name="rate" type="number" step="0.01" placeholder="Rate">' +
        '<input name="discount" placeholder="0 or 10%">' +
        '<input name="amount" disabled>' +
        '<button type="button" onclick="this.parentElement.remove(); update();">X</button>';
    row.querySelector('[name=name]').value = values.name || '';
    row.querySelector('[name=qty]').value = values.qty == null ? '' : values.qty;
    row.querySelector('[name=unit]').value = values.unit || 'PCS';
    row.querySelector('[name=rate]').value = values.rate == null ? '' : values.rate;
    row.querySelector('[name=discount]').value = values.discount || '';
    row.querySelectorAll('input, select').forEach(el => el.addEventListener('input', update));
    document.getElementById('items').appendChild(row);
    update();
}

function downloadName(res) {
    const header = res.headers.get('Content-Disposition') || '';
    const match = /filename="([^"]+)"/.exec(header);
    return match ? match[1] : 'invoice.pdf';
}

function setEditing(invoiceNo) {
    document.getElementById('isEditing').value = invoiceNo ? 'true' : 'false';
    document.getElementById('originalInvoiceNo').value = invoiceNo || '';
    document.getElementById('editingNo').textContent = invoiceNo || '';
    document.getElementById('editing').style.display = invoiceNo ? 'block' : 'none';
}

function clearForm() {
    document.getElementById('form').reset();
    document.getElementById('items').innerHTML = '';
    setEditing(null);
    addItem();
}

function searchInvoice() {
    const invoiceNo = document.getElementById('searchInvoice').value.trim();
    if (!invoiceNo) {
        showMessage('Please enter an invoice number to search', 'error');
        return;
    }
    fetch('/api/invoice/' + encodeURIComponent(invoiceNo))
        .then(res => res.json())
        .then(data => {
            if (!data.success) {
                showMessage(data.message || 'Invoice not found', 'error');
                return;
            }
            const inv = data.invoice;
            const form = document.getElementById('form');
            form.billto.value = inv.billTo;
            form.invoice.value = inv.invoiceNo;
            form.date.value = inv.date;
            form.duedate.value = inv.dueDate;
            form.received.value = inv.received;
            document.getElementById('items').innerHTML = '';
            inv.items.forEach(item => addItem(item));
            setEditing(inv.invoiceNo);
            showMessage('Invoice ' + inv.invoiceNo + ' loaded', 'success');
        })
        .catch(() => showMessage('Error searching for invoice. Please try again.', 'error'));
}

document.getElementById('form').addEventListener('submit', e => {
    e.preventDefault();
    const form = new FormData(e.target);
    const data = {
        billto: form.get('billto'),
        invoice: form.get('invoice'),
        date: form.get('date'),
        duedate: form.get('duedate') || form.get('date'),
        received: form.get('received') || '0',
        isEditing: document.getElementById('isEditing').value === 'true',
        originalInvoiceNo: document.getElementById('originalInvoiceNo').value,
        items: []
    };
    document.querySelectorAll('.item').forEach(row => {
        data.items.push({
            name: row.querySelector('[name=name]').value,
            qty: row.querySelector('[name=qty]').value,
            unit: row.querySelector('[name=unit]').value,
            rate: row.querySelector('[name=rate]').value,
            discount: row.querySelector('[name=discount]').value
        });
    });
    fetch('/generate', {
        method: 'POST',
        headers: {'Content-Type': 'application/json'},
        body: JSON.stringify(data)
    })
        .then(res => res.ok
            ? res.blob().then(blob => ({blob: blob, filename: downloadName(res)}))
            : res.json().then(err => Promise.reject(err)))
        .then(({blob, filename}) => {
            const url = URL.createObjectURL(blob);
            const a = document.createElement('a');
            a.href = url;
            a.download = filename;
            document.body.appendChild(a);
            a.click();
            a.remove();
            setTimeout(() => URL.revokeObjectURL(url), 100);
            setEditing(data.invoice);
            showMessage('Invoice ' + data.invoice + ' saved and downloaded', 'success');
        })
        .catch(err => showMessage((err && err.message) || 'Error processing invoice. Please try again.', 'error'));
});

addItem();
</script>
</body>
</html>
"""


# -----------------------------
# APP
# -----------------------------
def create_app(settings=None, store=None, renderer=None):
    settings = settings or load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = Flask(__name__)
    app.config["INVOICE_SETTINGS"] = settings
    app.extensions["invoice_store"] = store if store is not None else InvoiceStore.open(settings.database_path)
    app.extensions["pdf_renderer"] = renderer or PdfRenderer()

    app.add_url_rule("/", "index", index)
    app.add_url_rule("/generate", "generate", generate, methods=["POST"])
    app.add_url_rule("/api/invoice/<invoice_no>", "get_invoice", get_invoice)
    app.add_url_rule("/api/invoices", "list_invoices", list_invoices)
    app.add_url_rule("/api/invoice/<invoice_no>", "delete_invoice", delete_invoice, methods=["DELETE"])
    return app


def _settings() -> Settings:
    return current_app.config["INVOICE_SETTINGS"]


def _store() -> InvoiceStore:
    return current_app.extensions["invoice_store"]


def _fail(message, status=200, **extra):
    return jsonify(success=False, message=message, **extra), status


# -----------------------------
# ROUTES
# -----------------------------
def index():
    settings = _settings()
    return render_template_string(
        FORM_HTML,
        business=settings.business,
        today=today_ist(),
        units=list(UNITS),
        db_available=_store().available,
    )


def generate():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return _fail("Request body must be a JSON object", 400)
    try:
        payload = InvoiceRequest.model_validate(data)
    except ValidationError as exc:
        errors = [
            {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
            for error in exc.errors()
        ]
        return _fail("Invalid invoice data", 400, errors=errors)

    invoice = payload.to_invoice()
    settings = _settings()

    store = _store()
    if store.available:
        try:
            store.save(invoice, payload.update_target)
        except DuplicateInvoiceError:
            return _fail("Invoice number already exists. Please use a different number.", 400)
        except StoreError as exc:
            logger.warning("Database operation failed, continuing with PDF generation: %s", exc)

    plan = build_layout(invoice, settings.business, layout_options(settings))
    try:
        pdf = current_app.extensions["pdf_renderer"].render(plan)
    except RenderError:
        logger.error("Could not render invoice %s", invoice.invoice_no)
        return _fail("Failed to generate invoice PDF", 500)

    filename = invoice_filename(invoice.bill_to, invoice.invoice_no)
    response = send_file(
        io.BytesIO(pdf),
        mimetype="application/pdf",
        as_attachment=True,
        download_name=filename,
    )
    response.headers["Content-Disposition"] = f'attachment; filename="{filename}"'
    return response


def get_invoice(invoice_no):
    store = _store()
    if not store.available:
        return _fail(DB_UNAVAILABLE)
    try:
        invoice = store.get(invoice_no)
    except StoreError:
        logger.exception("Error fetching invoice %s", invoice_no)
        return _fail("Server error", 500)
    if invoice is None:
        return _fail("Invoice not found")
    return jsonify(success=True, invoice=invoice.to_dict())


def list_invoices():
    store = _store()
    if not store.available:
        return _fail(DB_UNAVAILABLE)
    try:
        invoices = store.list_recent(RECENT_LIMIT)
    except StoreError:
        logger.exception("Error listing invoices")
        return _fail("Server error", 500)
    return jsonify(success=True, invoices=[summary.to_dict() for summary in invoices])


def delete_invoice(invoice_no):
    store = _store()
    if not store.available:
        return _fail(DB_UNAVAILABLE)
    try:
        deleted = store.delete(invoice_no)
    except StoreError:
        logger.exception("Error deleting invoice %s", invoice_no)
        return _fail("Server error", 500)
    if not deleted:
        return _fail("Invoice not found", 404)
    return jsonify(success=True, message="Invoice deleted successfully")


# -----------------------------
# RUN
# -----------------------------
if __name__ == "__main__":
    app = create_app()
    app.run(host="0.0.0.0", port=app.config["INVOICE_SETTINGS"].port)
