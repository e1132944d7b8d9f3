from flask import Flask, render_template_string

from models import get_db
from repository import Game

app = Flask(__name__)

RECENT_GAMES_LIMIT = 20

TEMPLATE = """
<!DOCTYPE html>
<html>
<head>
    <title>Match Maker Admin</title>
    <style>
        body { font-family: sans-serif; margin: 2rem; background: #f4f4f4; }
        .container { max-width: 1200px; margin: auto; background: white; padding: 2rem; border-radius: 8px; box-shadow: 0 0 10px rgba(0,0,0,0.1); }
        h1, h2 { color: #333; }
        table { width: 100%; border-collapse: collapse; margin-bottom: 2rem; font-size: 0.9em; }
        th, td { padding: 8px; border: 1px solid #ddd; text-align: left; vertical-align: top; }
        th { background: #eee; }
        ol { margin: 0; padding-left: 1.2rem; }
        .badge { display: inline-block; padding: 2px 6px; border-radius: 4px; font-size: 0.8em; background: #ddd; }
        .status-open { background: #d4edda; color: #155724; }
        .status-closed { background: #f8d7da; color: #721c24; }
    </style>
    <script>
        function reloadData() {
            setTimeout(() => location.reload(), 5000);
        }
    </script>
</head>
<body onload="reloadData()">
    <div class="container">
        <h1>Admin Dashboard</h1>
        <h2>Games ({{ games|length }})</h2>
        {% if not games %}
            <p>No games found.</p>
        {% else %}
            <table>
                <tr><th>ID</th><th>When / Where</th><th>Organizers</th><th>Confirmed pairs</th><th>Waiting list</th><th>Status</th><th>Channel post</th></tr>
                {% for g in games %}
                <tr>
                    <td>{{ g.id }}</td>
                    <td>{{ g.date }} {{ g.time }}<br>{{ g.location }}</td>
                    <td>{{ g.organizer1_name }}{% if g.organizer1_username %} (@{{ g.organizer1_username }}){% endif %} / {{ g.organizer2_name }}</td>
                    <td><ol>{% for p in g.pairs %}<li>{{ p }}</li>{% endfor %}</ol></td>
                    <td>{% if g.waiting_list %}<ol>{% for p in g.waiting_list %}<li>{{ p }}</li>{% endfor %}</ol>{% else %}-{% endif %}</td>
                    <td>
                        {% if g.is_closed %}<span class="badge status-closed">CLOSED</span>
                        {% else %}<span class="badge status-open">OPEN</span>{% endif %}
                    </td>
                    <td>{{ g.channel_message_id if g.channel_message_id is not none else '-' }}</td>
                </tr>
                {% endfor %}
            </table>
        {% endif %}
    </div>
</body>
</html>
"""

@app.route('/')
def dashboard():
    conn = get_db()
    cursor = conn.cursor()

    # Check if table exists (to avoid errors on empty db)
    cursor.execute("SELECT count(name) FROM sqlite_master WHERE type='table' AND name='games'")
    if cursor.fetchone()[0] == 0:
        conn.close()
        return render_template_string(TEMPLATE, games=[])

    cursor.execute("SELECT * FROM games ORDER BY id DESC LIMIT ?", (RECENT_GAMES_LIMIT,))
    games = [Game.from_row(row) for row in cursor.fetchall()]

    conn.close()
    return render_template_string(TEMPLATE, games=games)

@app.route('/health')
def health():
    return "OK", 200

if __name__ == '__main__':
    app.run(host='0.0.0.0', port=5000)
