"""CLI entry point for the betting simulator."""
import logging
import random
import sys

import click
from rich.console import Console
from rich.table import Table
from rich.logging import RichHandler

from . import service
from .config import COMMON_SCORES, DB_PATH, STARTING_BALANCE, TOURNAMENTS
from .database import get_all_teams, get_connection, init_database
from .errors import BettingError, NotFoundError
from .export import export_history
from .markets import MarketType, display_name
from .models import ExactScore, MatchStats, GoalEvent, Tier
from .pricing import price_exact_score, price_special

console = Console()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    handlers=[RichHandler(console=console, rich_tracebacks=True)]
)
logger = logging.getLogger(__name__)


class BetsimGroup(click.Group):
    """Turns betting errors into a red message and exit code 1."""

    def invoke(self, ctx):
        try:
            return super().invoke(ctx)
        except NotFoundError as e:
            console.print(f"[red]Error: {e}[/red]")
            if e.suggestions:
                console.print("Did you mean: " + ", ".join(e.suggestions))
            sys.exit(1)
        except BettingError as e:
            console.print(f"[red]Error: {e}[/red]")
            sys.exit(1)


def open_db():
    conn = get_connection()
    init_database(conn)
    return conn


def short_name(key: str) -> str:
    return key[:28]


@click.group(cls=BetsimGroup)
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--user", "-u", envvar="BETSIM_USER", default="local", help="Acting user id")
@click.pass_context
def cli(ctx, debug, user):
    """Football betting simulator CLI."""
    if debug:
        logging.getLogger().setLevel(logging.DEBUG)
    ctx.obj = {"user": user}


@cli.command()
def init():
    """Initialize the database."""
    console.print("[bold]Initializing database...[/bold]")
    conn = get_connection()
    init_database(conn)
    conn.close()
    console.print(f"[green]Database initialized at {DB_PATH}[/green]")


# Teams

@cli.command("add-team")
@click.argument("name")
@click.option("--tier", "-t", required=True, type=click.Choice([t.value for t in Tier], case_sensitive=False))
@click.option("--position", "-p", default=10, help="League table position")
@click.option("--form", "-f", default="DDDDD", help="Last five results, oldest first (e.g. WWDLW)")
@click.option("--tournament", default=None, help="Competition the team plays in")
def add_team(name, tier, position, form, tournament):
    """Add or update a team."""
    conn = open_db()
    team = service.add_team(conn, name, tier, position, form, tournament)
    conn.close()
    console.print(f"[green]Saved {team.key}[/green] (pos. {team.position}, form {team.form})")


@cli.command("teams")
@click.option("--tier", "-t", default=None, type=click.Choice([t.value for t in Tier], case_sensitive=False))
def list_teams(tier):
    """List teams by tier and position."""
    conn = open_db()
    teams = get_all_teams(conn, Tier.parse(tier) if tier else None)
    conn.close()

    if not teams:
        console.print("[yellow]No teams yet. Use add-team first.[/yellow]")
        return

    table = Table(title="Teams")
    table.add_column("Team", style="cyan")
    table.add_column("Tier", justify="center")
    table.add_column("Pos", justify="right")
    table.add_column("Form", justify="center")
    table.add_column("Tournament")

    for team in teams:
        table.add_row(team.name, team.tier.value, str(team.position), team.form, team.tournament or "-")

    console.print(table)


@cli.command("team")
@click.argument("name")
def team_stats(name):
    """Show a team's detail card."""
    conn = open_db()
    stats = service.team_detailed_stats(conn, name)
    conn.close()

    team, form = stats["team"], stats["form_analysis"]
    console.print(f"[bold]{team.key}[/bold]")
    console.print(f"  Position: {team.position}")
    console.print(f"  Tournament: {team.tournament or '-'}")
    console.print(f"  Form: {form['form']} ({form['wins']}W {form['draws']}D {form['losses']}L)")
    console.print(f"  Points: {form['points']} ({form['percentage']}%)")
    if team.played:
        console.print(f"  Season: {team.played} played, {team.win_rate}% won, {team.goals_for}-{team.goals_against} goals")


@cli.command("compare")
@click.argument("team1")
@click.argument("team2")
@click.option("--tournament", default=None, type=click.Choice(list(TOURNAMENTS)), help="Price as this competition")
def compare(team1, team2, tournament):
    """Compare two teams head to head."""
    conn = open_db()
    card = service.compare_teams(conn, team1, team2, tournament)
    conn.close()

    table = Table(title=f"{card['team1'].key} vs {card['team2'].key}")
    table.add_column("", style="bold")
    table.add_column(card["team1"].name, justify="center", style="cyan")
    table.add_column(card["team2"].name, justify="center", style="cyan")
    table.add_row("Position", str(card["team1"].position), str(card["team2"].position))
    table.add_row("Form", card["form1"]["form"], card["form2"]["form"])
    table.add_row("Form points", f"{card['form1']['percentage']}%", f"{card['form2']['percentage']}%")
    table.add_row("Win odds", f"{card['odds'].home:.2f}", f"{card['odds'].away:.2f}")
    console.print(table)
    console.print(f"Draw: {card['odds'].draw:.2f}")


# Matches

@cli.command("create-match")
@click.argument("team1")
@click.argument("team2")
@click.option("--tournament", default=None, type=click.Choice(list(TOURNAMENTS)), help="Competition")
def create_match(team1, team2, tournament):
    """Create a match between two teams."""
    conn = open_db()
    match = service.create_match(conn, team1, team2, tournament)
    conn.close()
    console.print(f"[green]Match {match.id} created:[/green] {match.team1} vs {match.team2}")
    console.print(f"  Odds: {match.odds.home:.2f} / {match.odds.draw:.2f} / {match.odds.away:.2f}")


@cli.command("random-match")
@click.option("--tier", "-t", default=None, type=click.Choice([t.value for t in Tier], case_sensitive=False))
@click.option("--seed", type=int, default=None, help="Random seed")
def random_match(tier, seed):
    """Create a match between two random teams."""
    conn = open_db()
    match = service.generate_random_match(conn, Tier.parse(tier) if tier else None, random.Random(seed))
    conn.close()
    console.print(f"[green]Match {match.id} created:[/green] {match.team1} vs {match.team2}")
    console.print(f"  Odds: {match.odds.home:.2f} / {match.odds.draw:.2f} / {match.odds.away:.2f}")


@cli.command("matches")
@click.option("--finished", is_flag=True, help="Show finished matches instead")
def list_matches(finished):
    """List upcoming (or finished) matches."""
    conn = open_db()
    matches = service.finished_matches(conn) if finished else service.upcoming_matches(conn)
    conn.close()

    if not matches:
        console.print("[yellow]No matches found.[/yellow]")
        return

    table = Table(title="Finished Matches" if finished else "Upcoming Matches")
    table.add_column("ID", style="dim")
    table.add_column("Team 1", style="cyan")
    table.add_column("Team 2", style="cyan")
    table.add_column("1", justify="right", style="green")
    table.add_column("X", justify="right", style="yellow")
    table.add_column("2", justify="right", style="green")
    table.add_column("Tournament")
    table.add_column("Bets", justify="right")

    for match in matches:
        table.add_row(
            match.id,
            short_name(match.team1),
            short_name(match.team2),
            f"{match.odds.home:.2f}",
            f"{match.odds.draw:.2f}",
            f"{match.odds.away:.2f}",
            TOURNAMENTS.get(match.tournament, "-") if match.tournament else "-",
            str(len(match.bet_ids)),
        )

    console.print(table)


@cli.command("odds")
@click.argument("match_id")
def show_odds(match_id):
    """Show the full odds board of a match."""
    conn = open_db()
    match = service.get_match(conn, match_id)
    team1, team2 = service.match_teams(conn, match)
    conn.close()

    console.print(f"[bold]{match.team1} vs {match.team2}[/bold]")
    console.print(f"  1: {match.odds.home:.2f}   X: {match.odds.draw:.2f}   2: {match.odds.away:.2f}")

    scores = Table(title="Exact Score")
    scores.add_column("Score", justify="center")
    scores.add_column("Odds", justify="right", style="green")
    for home, away in COMMON_SCORES:
        scores.add_row(f"{home}-{away}", f"{price_exact_score(team1, team2, ExactScore(home, away)):.2f}")
    console.print(scores)

    name1 = team1.name if team1 else match.team1
    name2 = team2.name if team2 else match.team2
    specials = Table(title="Special Markets")
    specials.add_column("Code", style="dim")
    specials.add_column("Market")
    specials.add_column("Odds", justify="right", style="green")
    for market in MarketType:
        specials.add_row(market.value, display_name(market, name1, name2), f"{price_special(team1, team2, market):.2f}")
    console.print(specials)


@cli.command("set-odds")
@click.argument("match_id")
@click.argument("home", type=float)
@click.argument("draw", type=float)
@click.argument("away", type=float)
def set_odds(match_id, home, draw, away):
    """Override the odds of an upcoming match."""
    conn = open_db()
    match = service.set_match_odds(conn, match_id, home, draw, away)
    conn.close()
    console.print(f"[green]Odds updated:[/green] {match.odds.home:.2f} / {match.odds.draw:.2f} / {match.odds.away:.2f}")


@cli.command("delete-match")
@click.argument("match_id")
def delete_match(match_id):
    """Delete an upcoming match and refund its bets."""
    conn = open_db()
    refunded = service.delete_match(conn, match_id)
    conn.close()
    console.print(f"[green]Match {match_id} deleted, {refunded} bets refunded[/green]")


@cli.command("clear-upcoming")
def clear_upcoming():
    """Delete every upcoming match and refund its bets."""
    conn = open_db()
    deleted, refunded = service.delete_upcoming_matches(conn)
    conn.close()
    console.print(f"[green]{deleted} matches deleted, {refunded} bets refunded[/green]")


@cli.command("clear-history")
def clear_history():
    """Delete finished matches and their settled bets."""
    conn = open_db()
    deleted = service.delete_finished_matches(conn)
    conn.close()
    console.print(f"[green]{deleted} finished matches cleared[/green]")


# Bets

def _print_bet(bet):
    console.print(f"[green]Bet {bet.id} placed:[/green] {bet.description}")
    console.print(f"  Stake: {bet.amount:.2f} @ {bet.odds:.2f} -> potential {bet.potential_winnings:.2f}")


@cli.command("bet")
@click.argument("match_id")
@click.argument("pick")
@click.argument("amount", type=float)
@click.pass_context
def bet(ctx, match_id, pick, amount):
    """Bet on a result: home, draw or away."""
    conn = open_db()
    placed = service.place_bet(conn, ctx.obj["user"], match_id, "simple", pick, amount)
    conn.close()
    _print_bet(placed)


@cli.command("bet-exact")
@click.argument("match_id")
@click.argument("score")
@click.argument("amount", type=float)
@click.pass_context
def bet_exact(ctx, match_id, score, amount):
    """Bet on an exact score such as 2-1."""
    conn = open_db()
    placed = service.place_bet(conn, ctx.obj["user"], match_id, "exact_score", score, amount)
    conn.close()
    _print_bet(placed)


@cli.command("bet-special")
@click.argument("match_id")
@click.argument("market")
@click.argument("amount", type=float)
@click.pass_context
def bet_special(ctx, match_id, market, amount):
    """Bet on a special market (see the odds command for codes)."""
    conn = open_db()
    placed = service.place_bet(conn, ctx.obj["user"], match_id, "special", market, amount)
    conn.close()
    _print_bet(placed)


@cli.command("bet-combo")
@click.argument("match_id")
@click.argument("amount", type=float)
@click.argument("markets", nargs=-1, required=True)
@click.pass_context
def bet_combo(ctx, match_id, amount, markets):
    """Combine several special markets into one bet."""
    conn = open_db()
    placed = service.place_bet(conn, ctx.obj["user"], match_id, "special_combined", list(markets), amount)
    conn.close()
    _print_bet(placed)


@cli.command("my-bets")
@click.option("--limit", "-n", default=20, help="Number of bets to show")
@click.pass_context
def my_bets(ctx, limit):
    """Show your recent bets."""
    conn = open_db()
    bets = service.user_bets(conn, ctx.obj["user"], limit)
    conn.close()

    if not bets:
        console.print("[yellow]No bets yet.[/yellow]")
        return

    table = Table(title="My Bets")
    table.add_column("ID", style="dim")
    table.add_column("Match", style="dim")
    table.add_column("Selection", style="cyan")
    table.add_column("Stake", justify="right")
    table.add_column("Odds", justify="right")
    table.add_column("Status", justify="center")
    table.add_column("Payout", justify="right", style="green")

    for b in bets:
        color = {"won": "green", "lost": "red"}.get(b.status.value, "yellow")
        table.add_row(
            b.id,
            b.match_id,
            b.description[:40],
            f"{b.amount:.2f}",
            f"{b.odds:.2f}",
            f"[{color}]{b.status.value}[/{color}]",
            f"{b.payout:.2f}" if b.payout else "-",
        )

    console.print(table)


# Results

@cli.command("set-result")
@click.argument("match_id")
@click.argument("result")
@click.argument("home_goals", type=int)
@click.argument("away_goals", type=int)
@click.option("--corners", default=0, help="Total corners")
@click.option("--yellows", default=0, help="Total yellow cards")
@click.option("--reds", default=0, help="Total red cards")
@click.option("--team1-yellows", default=0, help="Yellow cards for team 1")
@click.option("--team2-yellows", default=0, help="Yellow cards for team 2")
@click.option("--team1-red", is_flag=True, help="Team 1 received a red card")
@click.option("--team2-red", is_flag=True, help="Team 2 received a red card")
@click.option("--event", "-e", multiple=True, help="Goal method, e.g. header, corner, free-kick")
def set_result(match_id, result, home_goals, away_goals, corners, yellows, reds,
               team1_yellows, team2_yellows, team1_red, team2_red, event):
    """Record a final result and settle every bet."""
    stats = MatchStats(
        total_corners=corners,
        total_yellow_cards=yellows,
        total_red_cards=reds,
        team1_yellow_cards=team1_yellows,
        team2_yellow_cards=team2_yellows,
        team1_red_card=team1_red,
        team2_red_card=team2_red,
        goal_events=frozenset(GoalEvent.parse(e) for e in event),
    )
    conn = open_db()
    outcome, batch = service.finalize_and_settle(conn, match_id, result, home_goals, away_goals, stats)
    conn.close()
    _print_settlement(outcome, batch)


@cli.command("simulate")
@click.argument("match_id")
@click.option("--seed", type=int, default=None, help="Random seed")
def simulate(match_id, seed):
    """Simulate a match and settle every bet."""
    conn = open_db()
    outcome, batch = service.simulate_match(conn, match_id, random.Random(seed))
    conn.close()
    _print_settlement(outcome, batch)


def _print_settlement(outcome, batch):
    console.print(f"[bold]Final score: {outcome.score}[/bold] ({outcome.result.value})")
    console.print(f"  Bets settled: {len(batch.entries)}")
    console.print(f"  Winners: {len(batch.winners)}")
    console.print(f"  Paid out: {batch.total_payout:.2f}")


# Wallets

@cli.command("balance")
@click.pass_context
def balance(ctx):
    """Show your balance."""
    conn = open_db()
    user = service.open_account(conn, ctx.obj["user"])
    conn.close()
    console.print(f"[bold]{user.username}[/bold]: {user.balance:.2f}")
    console.print(f"  Bets: {user.total_bets} ({user.won_bets} won, {user.lost_bets} lost)")
    console.print(f"  Winnings: {user.total_winnings:.2f}")


@cli.command("give")
@click.argument("to_user")
@click.argument("amount", type=float)
@click.option("--grant", is_flag=True, help="Create the money instead of sending your own")
@click.pass_context
def give(ctx, to_user, amount, grant):
    """Send money to another user."""
    conn = open_db()
    if grant:
        receiver = service.grant(conn, to_user, amount)
        console.print(f"[green]Granted {amount:.2f} to {to_user}[/green] (balance {receiver.balance:.2f})")
    else:
        sender, receiver = service.transfer(conn, ctx.obj["user"], to_user, amount)
        console.print(f"[green]Sent {amount:.2f} to {to_user}[/green] (your balance {sender.balance:.2f})")
    conn.close()


@cli.command("leaderboard")
@click.option("--limit", "-n", default=10, help="Number of users to show")
def leaderboard(limit):
    """Show the richest users."""
    conn = open_db()
    users = service.leaderboard(conn, limit)
    conn.close()

    if not users:
        console.print("[yellow]No users yet.[/yellow]")
        return

    table = Table(title="Leaderboard")
    table.add_column("#", justify="right")
    table.add_column("User", style="cyan")
    table.add_column("Balance", justify="right", style="green")
    table.add_column("Profit", justify="right")
    table.add_column("Win rate", justify="right")

    for rank, user in enumerate(users, 1):
        profit = user.balance - STARTING_BALANCE
        color = "green" if profit >= 0 else "red"
        table.add_row(
            str(rank),
            user.username,
            f"{user.balance:.2f}",
            f"[{color}]{profit:+.2f}[/{color}]",
            f"{user.win_rate}%",
        )

    console.print(table)


@cli.command("stats")
def show_stats():
    """Show general statistics."""
    conn = open_db()
    stats = service.general_stats(conn)
    conn.close()

    console.print("[bold]General statistics[/bold]")
    console.print(f"  Users: {stats['total_users']}")
    console.print(f"  Teams: {stats['total_teams']}")
    console.print(f"  Matches: {stats['upcoming_matches']} upcoming, {stats['finished_matches']} finished")
    console.print(f"  Bets: {stats['total_bets']} ({stats['active_bets']} active)")
    console.print(f"  Volume: {stats['total_volume']:.2f}")
    console.print(f"  Average balance: {stats['average_balance']:.2f}")
    if stats["betting_paused"]:
        console.print("  [yellow]Betting is paused[/yellow]")


@cli.command("pause")
def pause():
    """Pause all betting."""
    conn = open_db()
    service.pause_betting(conn)
    conn.close()
    console.print("[yellow]Betting paused[/yellow]")


@cli.command("resume")
def resume():
    """Resume betting."""
    conn = open_db()
    service.resume_betting(conn)
    conn.close()
    console.print("[green]Betting resumed[/green]")


@cli.command("export")
@click.option("--output", "-o", default=None, type=click.Path(), help="Output directory")
def export(output):
    """Export match and bet history to CSV and Parquet."""
    conn = open_db()
    paths = export_history(conn, output)
    conn.close()
    for name, path in paths.items():
        console.print(f"  {name}: {path}")


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
