from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    text,
)

from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata


class Professionals(Base):
    __tablename__ = 'professionals'

    name = Column(Text, nullable=False)
    id = Column(Integer, primary_key=True)
    email = Column(Text)
    buffer_time = Column(Integer, nullable=False, server_default=text('0'))  # minutes
    auto_confirm_bookings = Column(Boolean, nullable=False, server_default=text('0'))
    is_active = Column(Boolean, nullable=False, server_default=text('1'))
    created_at = Column(DateTime, server_default=text('CURRENT_TIMESTAMP'))

    services = relationship('Services', back_populates='professional')
    bookings = relationship('Bookings', back_populates='professional')
    group_classes = relationship('GroupClasses', back_populates='professional')
    availabilities = relationship('Availabilities', back_populates='professional', cascade='all, delete-orphan')


class Availabilities(Base):
    __tablename__ = 'availabilities'
    __table_args__ = (
        Index('ix_availabilities_professional_day', 'professional_id', 'day_of_week'),
    )

    professional_id = Column(ForeignKey('professionals.id', ondelete='CASCADE'), nullable=False)
    day_of_week = Column(Integer, nullable=False)  # 0 = Sunday
    start_time = Column(Text, nullable=False)  # "HH:MM"
    end_time = Column(Text, nullable=False)  # "HH:MM"
    id = Column(Integer, primary_key=True)
    created_at = Column(DateTime, server_default=text('CURRENT_TIMESTAMP'))

    professional = relationship('Professionals', back_populates='availabilities')


class Clients(Base):
    __tablename__ = 'clients'

    name = Column(Text, nullable=False)
    id = Column(Integer, primary_key=True)
    email = Column(Text)
    phone = Column(Text)
    created_at = Column(DateTime, server_default=text('CURRENT_TIMESTAMP'))

    bookings = relationship('Bookings', back_populates='client')
    group_participations = relationship('GroupParticipants', back_populates='client')
    group_registrations = relationship('GroupRegistrations', back_populates='client')


class Services(Base):
    __tablename__ = 'services'

    professional_id = Column(ForeignKey('professionals.id', ondelete='CASCADE'), nullable=False)
    name = Column(Text, nullable=False)
    duration = Column(Integer, nullable=False)  # minutes
    price = Column(Float, nullable=False, server_default=text('0'))
    is_active = Column(Boolean, nullable=False, server_default=text('1'))
    id = Column(Integer, primary_key=True)
    description = Column(Text)

    professional = relationship('Professionals', back_populates='services')
    bookings = relationship('Bookings', back_populates='service')


class Bookings(Base):
    __tablename__ = 'bookings'
    __table_args__ = (
        Index('ix_bookings_professional_window', 'professional_id', 'start_time', 'end_time'),
    )

    professional_id = Column(ForeignKey('professionals.id', ondelete='CASCADE'), nullable=False)
    client_id = Column(ForeignKey('clients.id', ondelete='CASCADE'))  # NULL = blocked slot
    service_id = Column(ForeignKey('services.id'))  # NULL = blocked slot
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)  # buffer-inclusive
    status = Column(Text, nullable=False, server_default=text("'PENDING'"))
    kind = Column(Text, nullable=False, server_default=text("'APPOINTMENT'"))
    payment_status = Column(Text, nullable=False, server_default=text("'PENDING'"))
    is_group_class = Column(Boolean, nullable=False, server_default=text('0'))
    max_participants = Column(Integer, nullable=False, server_default=text('1'))
    current_participants = Column(Integer, nullable=False, server_default=text('1'))
    is_recurring = Column(Boolean, nullable=False, server_default=text('0'))
    id = Column(Integer, primary_key=True)
    title = Column(Text)
    notes = Column(Text)
    cancel_reason = Column(Text)
    # Non-owning lookup keys: deleting the origin never deletes its occurrences
    parent_booking_id = Column(ForeignKey('bookings.id', ondelete='SET NULL'))
    parent_recurrence_id = Column(
        ForeignKey('recurrence_rules.id', ondelete='SET NULL', use_alter=True, name='fk_bookings_parent_recurrence')
    )
    created_at = Column(DateTime, nullable=False, server_default=text('CURRENT_TIMESTAMP'))
    updated_at = Column(DateTime, nullable=False, server_default=text('CURRENT_TIMESTAMP'))

    professional = relationship('Professionals', back_populates='bookings')
    client = relationship('Clients', back_populates='bookings')
    service = relationship('Services', back_populates='bookings')
    recurrence_rule = relationship(
        'RecurrenceRules',
        uselist=False,
        back_populates='booking',
        foreign_keys='RecurrenceRules.booking_id',
        cascade='all, delete-orphan',
    )
    participants = relationship(
        'GroupParticipants',
        back_populates='booking',
        cascade='all, delete-orphan',
    )


class RecurrenceRules(Base):
    __tablename__ = 'recurrence_rules'

    booking_id = Column(ForeignKey('bookings.id', ondelete='CASCADE'), nullable=False, unique=True)
    type = Column(Text, nullable=False)
    interval = Column(Integer, nullable=False, server_default=text('1'))
    weekdays = Column(Text, nullable=False, server_default=text("'[]'"))  # JSON list, 0 = Sunday
    id = Column(Integer, primary_key=True)
    month_day = Column(Integer)
    end_date = Column(Date)
    end_after = Column(Integer)
    created_at = Column(DateTime, server_default=text('CURRENT_TIMESTAMP'))

    booking = relationship('Bookings', back_populates='recurrence_rule', foreign_keys=[booking_id])


class GroupParticipants(Base):
    __tablename__ = 'group_participants'
    __table_args__ = (
        UniqueConstraint('booking_id', 'client_id'),
    )

    booking_id = Column(ForeignKey('bookings.id', ondelete='CASCADE'), nullable=False)
    client_id = Column(ForeignKey('clients.id', ondelete='CASCADE'), nullable=False)
    status = Column(Text, nullable=False, server_default=text("'CONFIRMED'"))
    id = Column(Integer, primary_key=True)
    created_at = Column(DateTime, server_default=text('CURRENT_TIMESTAMP'))

    booking = relationship('Bookings', back_populates='participants')
    client = relationship('Clients', back_populates='group_participations')


class GroupClasses(Base):
    __tablename__ = 'group_classes'

    professional_id = Column(ForeignKey('professionals.id', ondelete='CASCADE'), nullable=False)
    name = Column(Text, nullable=False)
    price = Column(Float, nullable=False, server_default=text('0'))
    duration = Column(Integer, nullable=False)  # minutes
    max_participants = Column(Integer, nullable=False)
    is_online = Column(Boolean, nullable=False, server_default=text('0'))
    is_active = Column(Boolean, nullable=False, server_default=text('1'))
    id = Column(Integer, primary_key=True)
    description = Column(Text)
    address = Column(Text)
    city = Column(Text)
    equipment = Column(Text)

    professional = relationship('Professionals', back_populates='group_classes')
    sessions = relationship('GroupSessions', back_populates='group_class', cascade='all, delete-orphan')


class GroupSessions(Base):
    __tablename__ = 'group_sessions'

    group_class_id = Column(ForeignKey('group_classes.id', ondelete='CASCADE'), nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    current_participants = Column(Integer, nullable=False, server_default=text('0'))
    status = Column(Text, nullable=False, server_default=text("'SCHEDULED'"))
    id = Column(Integer, primary_key=True)
    notes = Column(Text)

    group_class = relationship('GroupClasses', back_populates='sessions')
    registrations = relationship('GroupRegistrations', back_populates='session', cascade='all, delete-orphan')

    @property
    def max_participants(self) -> int:
        return self.group_class.max_participants


class GroupRegistrations(Base):
    __tablename__ = 'group_registrations'
    __table_args__ = (
        UniqueConstraint('session_id', 'client_id'),
    )

    session_id = Column(ForeignKey('group_sessions.id', ondelete='CASCADE'), nullable=False)
    client_id = Column(ForeignKey('clients.id', ondelete='CASCADE'), nullable=False)
    status = Column(Text, nullable=False, server_default=text("'REGISTERED'"))
    id = Column(Integer, primary_key=True)
    notes = Column(Text)
    created_at = Column(DateTime, server_default=text('CURRENT_TIMESTAMP'))
    updated_at = Column(DateTime, server_default=text('CURRENT_TIMESTAMP'))

    session = relationship('GroupSessions', back_populates='registrations')
    client = relationship('Clients', back_populates='group_registrations')
