from __future__ import annotations


def render_form_html() -> str:
    return """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>Variance Analysis Q&amp;A</title>
  <style>
    :root {
      --bg: #f3efe6;
      --paper: #fffaf1;
      --ink: #1f1d1a;
      --muted: #6d665d;
      --line: #d8cfbf;
      --accent: #0f766e;
      --accent-2: #1d4ed8;
      --warn: #b45309;
      --bad: #b91c1c;
      --shadow: 0 10px 30px rgba(31, 29, 26, 0.08);
      --radius: 14px;
      --mono: ui-monospace, SFMono-Regular, Menlo, Monaco, Consolas, "Liberation Mono", monospace;
      --sans: "Avenir Next", "Segoe UI", system-ui, sans-serif;
    }
    * { box-sizing: border-box; }
    body {
      margin: 0;
      font-family: var(--sans);
      color: var(--ink);
      background: linear-gradient(180deg, #f4f0e8 0%, #efe9dd 100%);
    }
    .wrap { max-width: 960px; margin: 0 auto; padding: 22px 18px 40px; display: grid; gap: 16px; }
    .hero { text-align: center; }
    .hero h1 { margin: 0 0 4px; font-size: 1.8rem; }
    .hero p { margin: 0; color: var(--muted); }
    .card {
      background: var(--paper);
      border: 1px solid var(--line);
      border-radius: var(--radius);
      box-shadow: var(--shadow);
      overflow: hidden;
    }
    .card h2 {
      margin: 0;
      padding: 12px 14px;
      font-size: .95rem;
      letter-spacing: .04em;
      text-transform: uppercase;
      border-bottom: 1px solid var(--line);
      background: rgba(255,255,255,.55);
    }
    .card .body { padding: 12px 14px; display: grid; gap: 10px; }
    textarea, input, button {
      width: 100%;
      border-radius: 10px;
      border: 1px solid var(--line);
      background: #fff;
      color: var(--ink);
      font: inherit;
      padding: 10px 11px;
    }
    textarea { min-height: 220px; resize: vertical; }
    .row { display: flex; gap: 10px; flex-wrap: wrap; }
    .row input { flex: 1; min-width: 220px; }
    .row button { width: auto; }
    button { cursor: pointer; font-weight: 600; }
    button.primary { background: var(--accent); color: #fff; border-color: var(--accent); }
    button.query { background: var(--accent-2); color: #fff; border-color: var(--accent-2); }
    button:disabled { opacity: .45; cursor: not-allowed; }
    .banner { border-radius: 10px; padding: 10px 12px; }
    .banner.error { background: #fee2e2; border: 1px solid #f87171; color: var(--bad); }
    .banner.warning { background: #fef3c7; border: 1px solid #fbbf24; color: var(--warn); }
    .hidden { display: none; }
    .muted { color: var(--muted); text-align: center; }
    pre { white-space: pre-wrap; font-family: var(--mono); margin: 0; }
    table { width: 100%; border-collapse: collapse; font-size: .92rem; }
    th, td { text-align: left; vertical-align: top; padding: 6px 8px; border-bottom: 1px solid var(--line); }
    th { font-size: .75rem; text-transform: uppercase; letter-spacing: .04em; color: var(--muted); }
    .foot { font-size: .75rem; color: var(--muted); text-align: right; }
  </style>
</head>
<body>
  <div class="wrap">
    <header class="hero">
      <h1>Variance Analysis Q&amp;A</h1>
      <p>Paste a transcript, process it, then ask questions.</p>
    </header>

    <div id="warningBanner" class="banner warning hidden" role="status"></div>
    <div id="errorBanner" class="banner error hidden" role="alert"></div>

    <section class="card">
      <h2>Commentary Transcript</h2>
      <div class="body">
        <textarea id="transcript" placeholder="Paste your commentary transcript here…"></textarea>
        <div class="row">
          <button id="processBtn" class="primary" type="button" disabled>Initializing…</button>
          <button id="sampleBtn" type="button">Load Sample Transcript</button>
          <button id="resetBtn" type="button">Reset</button>
          <button id="exportBtn" type="button" disabled>Export XLSX</button>
        </div>
      </div>
    </section>

    <section class="card">
      <h2>Ask a Question</h2>
      <div class="body">
        <div class="row">
          <input id="query" type="text" placeholder="e.g., Why was Gross Margin down?" />
          <button id="queryBtn" class="query" type="button">Query</button>
        </div>
      </div>
    </section>

    <section class="card">
      <h2>Analysis Result</h2>
      <div class="body">
        <p id="statusMessage" class="muted"></p>
        <pre id="result" class="hidden"></pre>
        <table id="itemsTable" class="hidden">
          <thead><tr><th>KPI</th><th>Drivers</th><th>Comparison</th><th>Impact</th></tr></thead>
          <tbody id="itemsBody"></tbody>
        </table>
      </div>
    </section>

    <div id="sessionFoot" class="foot"></div>
  </div>

  <script>
    (() => {
      const els = {
        transcript: document.getElementById("transcript"),
        query: document.getElementById("query"),
        processBtn: document.getElementById("processBtn"),
        sampleBtn: document.getElementById("sampleBtn"),
        resetBtn: document.getElementById("resetBtn"),
        exportBtn: document.getElementById("exportBtn"),
        queryBtn: document.getElementById("queryBtn"),
        warningBanner: document.getElementById("warningBanner"),
        errorBanner: document.getElementById("errorBanner"),
        statusMessage: document.getElementById("statusMessage"),
        result: document.getElementById("result"),
        itemsTable: document.getElementById("itemsTable"),
        itemsBody: document.getElementById("itemsBody"),
        sessionFoot: document.getElementById("sessionFoot"),
      };
      const state = { sessionId: null, session: null, inFlight: null };

      async function apiFetch(path, options = {}) {
        const headers = { "Content-Type": "application/json", ...(options.headers || {}) };
        const response = await fetch(path, { ...options, headers });
        const body = await response.json().catch(() => ({}));
        if (!response.ok) {
          const detail = body && body.detail ? body.detail : `HTTP ${response.status}`;
          throw new Error(typeof detail === "string" ? detail : JSON.stringify(detail));
        }
        return body;
      }

      function sessionPath(suffix = "") {
        return `/sessions/${encodeURIComponent(state.sessionId)}${suffix}`;
      }

      function setBanner(el, text) {
        el.textContent = text || "";
        el.classList.toggle("hidden", !text);
      }

      function renderItems(items) {
        els.itemsBody.innerHTML = "";
        (items || []).forEach((item) => {
          const tr = document.createElement("tr");
          [item.kpi, (item.drivers || []).join("; "), item.comparison, item.impact].forEach((value) => {
            const td = document.createElement("td");
            td.textContent = value || "";
            tr.appendChild(td);
          });
          els.itemsBody.appendChild(tr);
        });
        els.itemsTable.classList.toggle("hidden", !(items && items.length));
      }

      function render(session, { syncTranscript = false } = {}) {
        state.session = session;
        const extracting = session.extraction_in_progress || state.inFlight === "process";
        const querying = session.query_in_progress || state.inFlight === "query";
        const busy = extracting || querying;

        if (syncTranscript) els.transcript.value = session.transcript || "";
        setBanner(els.warningBanner, session.warning);
        setBanner(els.errorBanner, session.error);

        els.processBtn.disabled = busy || !session.identity_ready;
        els.processBtn.textContent = !session.identity_ready
          ? "Initializing…"
          : extracting ? "Processing…" : "Process Transcript";
        els.queryBtn.disabled = busy;
        els.queryBtn.textContent = querying ? "Thinking…" : "Query";
        els.sampleBtn.disabled = extracting;
        els.resetBtn.disabled = busy;
        els.exportBtn.disabled = busy || session.commentary === null;

        const statusText = extracting ? "Processing transcript…" : session.status_message;
        els.statusMessage.textContent = statusText || "";
        els.statusMessage.classList.toggle("hidden", !statusText);
        els.result.textContent = session.result || "";
        els.result.classList.toggle("hidden", !session.result);
        renderItems(session.items);

        const who = session.identity ? `${session.identity.source}:${session.identity.user_id}` : "pending";
        els.sessionFoot.textContent = `app ${session.app_id} · identity ${who}`;
      }

      function showError(err) {
        const msg = err instanceof Error ? err.message : String(err);
        setBanner(els.errorBanner, msg);
      }

      async function waitForIdentity() {
        while (state.session && !state.session.identity_ready) {
          await new Promise((resolve) => setTimeout(resolve, 300));
          render(await apiFetch(sessionPath()));
        }
      }

      async function startSession() {
        const session = await apiFetch("/sessions", { method: "POST" });
        state.sessionId = session.session_id;
        render(session, { syncTranscript: true });
        await waitForIdentity();
      }

      async function runCycle(kind, action) {
        if (state.inFlight || !state.session) return;
        state.inFlight = kind;
        render(state.session);
        try {
          render(await action());
        } finally {
          state.inFlight = null;
          if (state.session) render(state.session);
        }
      }

      function processTranscript() {
        return runCycle("process", async () => {
          await apiFetch(sessionPath("/transcript"), {
            method: "PUT",
            body: JSON.stringify({ transcript: els.transcript.value }),
          });
          return apiFetch(sessionPath("/process"), { method: "POST" });
        });
      }

      function askQuestion() {
        return runCycle("query", () =>
          apiFetch(sessionPath("/query"), {
            method: "POST",
            body: JSON.stringify({ query: els.query.value }),
          })
        );
      }

      async function loadSample() {
        render(await apiFetch(sessionPath("/sample"), { method: "POST" }), { syncTranscript: true });
      }

      async function resetForm() {
        render(await apiFetch(sessionPath("/reset"), { method: "POST" }), { syncTranscript: true });
        els.query.value = "";
      }

      function bind() {
        els.processBtn.addEventListener("click", () => processTranscript().catch(showError));
        els.queryBtn.addEventListener("click", () => askQuestion().catch(showError));
        els.query.addEventListener("keydown", (e) => {
          if (e.key === "Enter" && !els.queryBtn.disabled) askQuestion().catch(showError);
        });
        els.sampleBtn.addEventListener("click", () => loadSample().catch(showError));
        els.resetBtn.addEventListener("click", () => resetForm().catch(showError));
        els.exportBtn.addEventListener("click", () => {
          window.location.href = sessionPath("/export");
        });
        window.addEventListener("pagehide", () => {
          if (state.sessionId) fetch(sessionPath(), { method: "DELETE", keepalive: true }).catch(() => {});
        });
      }

      bind();
      startSession().catch(showError);
    })();
  </script>
</body>
</html>
"""
