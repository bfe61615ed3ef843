"""
JavaScript function sources evaluated inside the Telepath page.

Each constant is a function expression; ``InteractiveSessionDriver.evaluate``
applies it to JSON-serialised arguments. Reads return a plain structural
snapshot that is classified in Python; writes are kept as small as possible.
"""

from __future__ import annotations

# Phone numbers are rendered as bare E.164 text in table cells.
PHONE_CELL_PATTERN = r"^\+\d{10,15}$"

MAX_ANCESTOR_DEPTH = 10

SNAPSHOT_JS = """
(maxDepth) => {
    const phoneRe = /^\\+\\d{10,15}$/;
    const lines = [];
    for (const td of document.querySelectorAll('td')) {
        const number = (td.innerText || '').trim();
        if (!phoneRe.test(number)) continue;
        const chain = [];
        let container = td;
        for (let depth = 1; depth <= maxDepth; depth++) {
            container = container.parentElement;
            if (!container) break;
            const input = container.querySelector('input');
            let inputInfo = null;
            if (input) {
                const rect = input.getBoundingClientRect();
                const holder = input.parentElement;
                inputInfo = {
                    width: rect.width,
                    height: rect.height,
                    buttons: holder ? holder.querySelectorAll('button').length : 0,
                };
            }
            chain.push({ depth, text: container.innerText || '', input: inputInfo });
            if (input) break;
        }
        lines.push({ number, chain });
    }
    const buttons = Array.from(document.querySelectorAll('button')).map((b, index) => ({
        index,
        text: (b.textContent || '').trim(),
    }));
    return {
        lines,
        buttons,
        bodyText: document.body ? document.body.innerText || '' : '',
        textInputs: document.querySelectorAll('input[type="text"], input:not([type])').length,
    };
}
"""

CLICK_TEXT_JS = """
(text) => {
    for (const el of document.querySelectorAll('*')) {
        if ((el.textContent || '').trim() === text) {
            el.click();
            return true;
        }
    }
    return false;
}
"""

CLICK_BUTTON_JS = """
(index, expectedText) => {
    const btn = document.querySelectorAll('button')[index];
    if (!btn || (btn.textContent || '').trim() !== expectedText) return false;
    btn.click();
    return true;
}
"""

DIAL_JS = """
(from, to, depth) => {
    let cell = null;
    for (const td of document.querySelectorAll('td')) {
        if ((td.innerText || '').trim() === from) { cell = td; break; }
    }
    if (!cell) return { ok: false, reason: 'number' };
    let container = cell;
    for (let i = 0; i < depth && container; i++) container = container.parentElement;
    const input = container ? container.querySelector('input') : null;
    if (!input) return { ok: false, reason: 'input' };
    const holder = input.parentElement;
    const button = holder ? holder.querySelector('button') : null;
    if (!button) return { ok: false, reason: 'button' };

    input.focus();
    const setter = Object.getOwnPropertyDescriptor(HTMLInputElement.prototype, 'value').set;
    setter.call(input, to);
    input.dispatchEvent(new Event('input', { bubbles: true }));
    input.dispatchEvent(new Event('change', { bubbles: true }));
    button.click();
    return { ok: true };
}
"""

LOGIN_JS = """
async (username, password, baseUrl) => {
    const response = await fetch(`${baseUrl}/api/auth/signin`, {
        method: 'POST',
        headers: { 'Content-Type': 'application/json' },
        body: JSON.stringify({ username, password }),
    });
    if (!response.ok) return { success: false, status: response.status, error: `HTTP ${response.status}` };
    const data = await response.json();
    if (data.accessToken) {
        localStorage.setItem('access_token', data.accessToken);
        localStorage.setItem('user', JSON.stringify(data));
    }
    return { success: Boolean(data.accessToken), userId: data.id || data._id || null, token: data.accessToken || null };
}
"""

__all__ = [
    "CLICK_BUTTON_JS",
    "CLICK_TEXT_JS",
    "DIAL_JS",
    "LOGIN_JS",
    "MAX_ANCESTOR_DEPTH",
    "PHONE_CELL_PATTERN",
    "SNAPSHOT_JS",
]
