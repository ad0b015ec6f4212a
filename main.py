#!/usr/bin/env python3
from __future__ import annotations

import argparse
import os
import queue
import sys

from rich.box import ROUNDED
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from config import build_patterns, load_config
from log_parser import CHANNELS, Chat, Login, Logout, Start, Stop
from log_watcher import LogWatcher
from rcon_client import RconClient
from utils import fmt_ts, setup_logging

console = Console()


def banner():
    console.print(Panel.fit("[bold cyan]MC Log Watcher[/bold cyan] — chat, connexions et état du serveur", box=ROUNDED))


def show_config(conf):
    t = Table(title="Configuration", show_lines=False, show_header=False, box=ROUNDED)
    t.add_column(justify="left")
    t.add_column(justify="right")
    t.add_row("Log", str(conf["log"]["path"]))
    t.add_row("Intervalle (s)", str(conf["log"]["interval"]))
    t.add_row("Encodage", str(conf["log"]["encoding"]))
    t.add_row("Ligne d'arrêt", str(conf["patterns"]["stop_marker"]))
    t.add_row("Annonces join/left", "oui" if conf["patterns"]["announcements"] else "non")
    if conf["rcon"]["enabled"]:
        t.add_row("RCON", f"{conf['rcon']['host']}:{conf['rcon']['port']}")
    else:
        t.add_row("RCON", "désactivé")
    console.print(t)


def connect_rcon(conf):
    if not conf["rcon"]["enabled"]:
        return None
    rc = RconClient(
        host=str(conf["rcon"]["host"]),
        port=int(conf["rcon"]["port"]),
        password=str(conf["rcon"]["password"]),
        timeout=float(conf["rcon"]["timeout"]),
    )
    try:
        rc.connect()
    except Exception as e:
        console.print(f"[yellow]RCON indisponible : {escape(str(e))}[/yellow]")
    return rc


def print_players(rc):
    if rc is None:
        return
    players = rc.list_players()
    if players is None:
        console.print(f"{fmt_ts()} [red]serveur injoignable[/red]")
        return
    names = ", ".join(players.users) or "-"
    console.print(f"{fmt_ts()} [cyan]{escape(players.status())}[/cyan] en ligne : {escape(names)}")


def handle_event(event, rc):
    if isinstance(event, Chat):
        console.print(f"{fmt_ts()} [green]<{escape(event.username)}>[/green] {escape(event.message)}")
    elif isinstance(event, Login):
        console.print(f"{fmt_ts()} [bold]{escape(event.username)}[/bold] [green]s'est connecté[/green]")
        print_players(rc)
    elif isinstance(event, Logout):
        console.print(f"{fmt_ts()} [bold]{escape(event.username)}[/bold] [red]s'est déconnecté[/red]")
        print_players(rc)
    elif isinstance(event, Start):
        console.print(f"{fmt_ts()} [bold green]Serveur démarré[/bold green]")
        if rc is not None:
            rc.close()
            try:
                rc.connect()
            except Exception as e:
                console.print(f"[yellow]RCON indisponible : {escape(str(e))}[/yellow]")
        print_players(rc)
    elif isinstance(event, Stop):
        console.print(f"{fmt_ts()} [bold red]Serveur arrêté[/bold red]")
        if rc is not None:
            rc.close()


def parse_args(argv=None):
    ap = argparse.ArgumentParser(description="Suit le log d'un serveur Minecraft et affiche les événements.")
    ap.add_argument("--config", default="config.json")
    ap.add_argument("--log", help="chemin du log (remplace log.path)")
    ap.add_argument("--interval", type=float, help="intervalle de scrutation en secondes")
    ap.add_argument("--no-rcon", action="store_true", help="ne pas interroger le serveur via RCON")
    ap.add_argument("-v", "--verbose", action="store_true")
    return ap.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    conf = load_config(args.config)
    if args.log:
        conf["log"]["path"] = args.log
    if args.interval:
        conf["log"]["interval"] = args.interval
    if args.no_rcon:
        conf["rcon"]["enabled"] = False
    setup_logging("DEBUG" if args.verbose else conf["logging"]["level"])

    console.print("")
    banner()
    show_config(conf)

    # RCON reste sur le thread principal, le thread du watcher ne fait que mettre en file
    events = queue.Queue()
    watcher = LogWatcher(
        conf["log"]["path"],
        interval=float(conf["log"]["interval"]),
        encoding=str(conf["log"]["encoding"]),
        patterns=build_patterns(conf),
    )
    for channel in CHANNELS:
        watcher.on(channel, events.put)

    rc = connect_rcon(conf)
    print_players(rc)
    watcher.start()
    console.print("[grey50]Ctrl+C pour quitter[/grey50]\n")
    try:
        while True:
            try:
                event = events.get(timeout=0.5)
            except queue.Empty:
                continue
            handle_event(event, rc)
    except KeyboardInterrupt:
        console.print("\n --- PROGRAMME TERMINÉ --- \n")
    finally:
        watcher.stop()
        if rc is not None:
            rc.close()


if __name__ == "__main__":
    sys.path.append(os.path.dirname(__file__))
    main()
