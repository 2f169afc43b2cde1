import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, JSON, Text
from store import Base

def generate_uuid():
    return str(uuid.uuid4())

class Scan(Base):
    __tablename__ = "scans"

    id = Column(String, primary_key=True, default=generate_uuid)
    url = Column(Text, nullable=False)
    score = Column(Integer, nullable=False)

    ssl_data = Column(JSON, nullable=False)
    headers_data = Column(JSON, nullable=False)
    vulnerabilities_data = Column(JSON, nullable=False)
    dns_data = Column(JSON, nullable=False)
    whois_data = Column(JSON, nullable=False)
    recommendations = Column(JSON, nullable=False, default=list)

    # No foreign key: owner comes from the auth service, not this database
    user_id = Column(String, nullable=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow)
