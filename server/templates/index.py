"""
HTML Template
=============

HTML template for the web interface. Polls the session state endpoint
once a second; frames are posted by the mobile client.
"""

HTML_TEMPLATE = """
<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Stretch Coach</title>
    <style>
      * {
        box-sizing: border-box;
      }
      body {
        font-family: 'Segoe UI', system-ui, -apple-system, sans-serif;
        margin: 0;
        min-height: 100vh;
        background: #0f172a;
        color: #e2e8f0;
        display: flex;
        justify-content: center;
        align-items: center;
        padding: 1rem;
      }
      .panel {
        background: #1e293b;
        padding: 2rem;
        border-radius: 18px;
        box-shadow: 0 20px 45px rgba(15, 23, 42, 0.45);
        width: min(640px, 100%);
      }
      h1 {
        margin: 0 0 0.25rem;
        font-size: 1.8rem;
        color: #f8fafc;
      }
      .subtitle {
        color: #94a3b8;
        margin-bottom: 1.5rem;
      }
      .buttons {
        margin-bottom: 1rem;
        display: flex;
        gap: 0.75rem;
        flex-wrap: wrap;
      }
      button {
        border: none;
        padding: 0.65rem 1.3rem;
        border-radius: 999px;
        font-size: 0.95rem;
        font-weight: 600;
        cursor: pointer;
        background: #4c1d95;
        color: #f8fafc;
      }
      button.active {
        background: #ec4899;
      }
      .timer {
        font-size: 3rem;
        font-weight: 700;
        margin: 1rem 0;
      }
      .meta {
        display: flex;
        justify-content: space-between;
        font-size: 0.9rem;
        color: #94a3b8;
      }
      .completed {
        color: #22c55e;
      }
    </style>
  </head>
  <body>
    <div class="panel">
      <h1>Stretch Coach</h1>
      <p class="subtitle">Hold each stretch while the camera confirms your pose.</p>
      <div class="buttons">
        {% for ex in exercises %}
        <button id="{{ ex.name }}" onclick="select('{{ ex.name }}')">{{ ex.name.replace('_', ' ').title() }}</button>
        {% endfor %}
      </div>
      <div class="timer" id="timer">--</div>
      <div class="meta">
        <span id="set">Set -/-</span>
        <span id="side">Side -</span>
        <span id="phase">idle</span>
      </div>
      <div class="buttons" style="margin-top: 1rem">
        <button onclick="send('toggle')">Start / Pause</button>
        <button onclick="send('skip')">Skip</button>
        <button onclick="send('switch_side')">Switch side</button>
        <button onclick="send('reset')">Reset</button>
      </div>
    </div>
    <script>
      let exercise = '{{ exercises[0].name if exercises else "" }}';

      function render(state) {
        document.getElementById('timer').textContent = state.timer_seconds + 's';
        document.getElementById('set').textContent = 'Set ' + state.current_set + '/' + state.total_sets;
        document.getElementById('side').textContent = 'Side ' + state.current_side.replace('_', ' ');
        const phase = document.getElementById('phase');
        phase.textContent = state.phase.replace('_', ' ');
        phase.className = state.completed ? 'completed' : '';
      }

      function select(name) {
        exercise = name;
        document.querySelectorAll('.buttons button[id]').forEach(b => {
          b.classList.toggle('active', b.id === name);
        });
        poll();
      }

      function send(command) {
        fetch('/session/' + exercise + '/' + command, {method: 'POST'})
          .then(r => r.json()).then(render);
      }

      function poll() {
        if (!exercise) return;
        fetch('/session/' + exercise).then(r => r.json()).then(render);
      }

      select(exercise);
      setInterval(poll, 1000);
    </script>
  </body>
</html>
"""
