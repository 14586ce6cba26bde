"""
DNS instruction generation
Builds the record set a user must create at their DNS host for a custom
domain. Pure functions: no network access, same input gives same output.
"""

from typing import List

from sitedeploy.models import DnsRecord, DnsRecordType
from sitedeploy.utils.validators import is_apex_domain, DomainValidator


DEFAULT_TTL = 3600

GITHUB_PAGES_IPV4 = [
    "185.199.108.153",
    "185.199.109.153",
    "185.199.110.153",
    "185.199.111.153",
]
GITHUB_PAGES_IPV6 = [
    "2606:50c0:8000::153",
    "2606:50c0:8001::153",
    "2606:50c0:8002::153",
    "2606:50c0:8003::153",
]
VERCEL_APEX_IP = "76.76.21.21"
VERCEL_CNAME_TARGET = "cname.vercel-dns.com"
NETLIFY_APEX_IP = "75.2.60.5"


def _record(record_type: DnsRecordType, domain: str, value: str) -> DnsRecord:
    return DnsRecord(
        type=record_type,
        name=DomainValidator.record_name(domain),
        value=value,
        ttl=DEFAULT_TTL,
    )


def github_pages_records(domain: str, owner: str) -> List[DnsRecord]:
    """Apex: 4 A + 4 AAAA. Subdomain: CNAME to {owner}.github.io. Plus TXT."""
    if is_apex_domain(domain):
        records = [_record(DnsRecordType.A, domain, ip) for ip in GITHUB_PAGES_IPV4]
        records += [_record(DnsRecordType.AAAA, domain, ip) for ip in GITHUB_PAGES_IPV6]
    else:
        records = [_record(DnsRecordType.CNAME, domain, f"{owner}.github.io")]

    records.append(_record(DnsRecordType.TXT, domain, f"_github-pages-challenge-{owner}"))
    return records


def vercel_records(domain: str) -> List[DnsRecord]:
    """Apex: A to Vercel's anycast IP. Subdomain: CNAME to cname.vercel-dns.com."""
    if is_apex_domain(domain):
        return [_record(DnsRecordType.A, domain, VERCEL_APEX_IP)]
    return [_record(DnsRecordType.CNAME, domain, VERCEL_CNAME_TARGET)]


def netlify_records(domain: str, site_name: str, site_id: str) -> List[DnsRecord]:
    """Apex: A to Netlify's load balancer. Subdomain: CNAME to {site}.netlify.app. Plus TXT."""
    if is_apex_domain(domain):
        records = [_record(DnsRecordType.A, domain, NETLIFY_APEX_IP)]
    else:
        records = [_record(DnsRecordType.CNAME, domain, f"{site_name}.netlify.app")]

    records.append(_record(DnsRecordType.TXT, domain, f"netlify-site={site_id}"))
    return records


def cloudflare_records(domain: str, project_name: str) -> List[DnsRecord]:
    """
    Apex and subdomain both get a CNAME to {project}.pages.dev; at the apex
    this relies on CNAME flattening at the DNS host. Plus TXT.
    """
    records = [_record(DnsRecordType.CNAME, domain, f"{project_name}.pages.dev")]
    records.append(
        _record(DnsRecordType.TXT, domain, f"cloudflare-pages-verification={project_name}")
    )
    return records
