#!/usr/bin/env python3
"""Seed the database with a starter set of league tables."""
from betsim.database import get_connection, init_database, transaction, upsert_team
from betsim.models import Team, Tier

# Standings as of the last table update
D1_TABLE = [
    {'name': 'Atletico Costanera', 'position': 1, 'form': 'WWWDW'},
    {'name': 'Deportivo Puerto Viejo', 'position': 2, 'form': 'WDWWL'},
    {'name': 'Union del Sur', 'position': 3, 'form': 'DWWLW'},
    {'name': 'Racing Maradei', 'position': 5, 'form': 'WLDWD'},
    {'name': 'Club Sportivo Ribera', 'position': 8, 'form': 'LDWDL'},
    {'name': 'Estrella Roja FC', 'position': 12, 'form': 'DLLWD'},
    {'name': 'Juventud Unida', 'position': 16, 'form': 'LLDLW'},
    {'name': 'Talleres del Norte', 'position': 18, 'form': 'LLLDL'},
]

D2_TABLE = [
    {'name': 'San Telmo Juniors', 'position': 1, 'form': 'WWWWD'},
    {'name': 'Defensores de Valencia', 'position': 3, 'form': 'WDWLW'},
    {'name': 'Independiente Rio Chico', 'position': 7, 'form': 'DDWLD'},
    {'name': 'Almagro United', 'position': 10, 'form': 'LWDDL'},
    {'name': 'Sportivo Las Palmas', 'position': 15, 'form': 'LLWLD'},
    {'name': 'Ferro del Oeste', 'position': 18, 'form': 'LLLLD'},
]

D3_TABLE = [
    {'name': 'Barracas Central', 'position': 1, 'form': 'WWDWW'},
    {'name': 'Argentino de Quilmes', 'position': 4, 'form': 'WDLWD'},
    {'name': 'Deportivo Merlo Sur', 'position': 9, 'form': 'DLDWL'},
    {'name': 'Comunicaciones B', 'position': 14, 'form': 'LLDLL'},
]

TABLES = [(Tier.D1, 'd1', D1_TABLE), (Tier.D2, 'd2', D2_TABLE), (Tier.D3, 'd3', D3_TABLE)]


if __name__ == '__main__':
    print("=" * 60)
    print("Seeding league tables...")
    print("=" * 60)

    conn = get_connection()
    init_database(conn)

    saved = 0
    with transaction(conn):
        for tier, tournament, table in TABLES:
            for row in table:
                upsert_team(conn, Team(tier=tier, tournament=tournament, **row))
                saved += 1
            print(f"  {tier.value}: {len(table)} teams")

    conn.close()

    print("\n" + "=" * 60)
    print(f"Saved {saved} teams")
